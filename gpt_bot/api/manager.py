"""补全管理器核心模块。

CompletionManager 持有会话历史，负责：

1. 把用户 prompt 乐观地追加到历史；
2. 用窗口内的历史构造 ChatRequest 并调用 Provider；
3. 成功时保留 prompt 并返回 choices，任何失败都撤销这条 prompt。

所有调用经同一个单线程队列串行执行，避免多次调用同时改写历史。
"""

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from threading import RLock
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union
from uuid import uuid4

from gpt_bot.config.settings import settings as default_settings
from gpt_bot.domain.conversation import ConversationState
from gpt_bot.domain.exceptions import BusinessError, TransportError, ValidationError
from gpt_bot.domain.models import (
    STOP_STRING,
    ChatCompletionResponse,
    ChatRequest,
    CompletionResult,
    Message,
)
from gpt_bot.infrastructure.logging.logger import logger
from gpt_bot.providers.base import ProviderClient
from gpt_bot.providers.registry import get_model_config


CompletionCallback = Callable[[CompletionResult], None]

MIN_TEMPERATURE = 0.0
MAX_TEMPERATURE = 2.0


class CompletionManager:
    def __init__(
        self,
        provider_client: ProviderClient,
        settings: Optional[Any] = None,
        conversation: Optional[ConversationState] = None,
    ):
        self._provider_client = provider_client
        self._settings = settings or default_settings
        self._conversation = conversation if conversation is not None else ConversationState()
        self._call_lock = RLock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="gpt-bot-completion")

    @property
    def history(self) -> Tuple[Message, ...]:
        return self._conversation.snapshot()

    def reset(self) -> None:
        with self._call_lock:
            self._conversation.clear()

    def complete(
        self,
        prompt: Union[Message, str],
        *,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        stop: Optional[Sequence[str]] = None,
        temperature: Optional[float] = None,
        n: int = 1,
    ) -> ChatCompletionResponse:
        """同步执行一次补全。

        Args:
            prompt: 用户消息；传入字符串时按 user 角色包装。
            model: 模型名，默认取配置中的 default_model。
            max_tokens: 最大生成 token 数。
            stop: 停止串列表，默认 [STOP_STRING]。
            temperature: 生成温度，范围 [0, 2]。
            n: 候选回答数。

        Returns:
            ChatCompletionResponse，此时 prompt 已保留在历史中。

        Raises:
            ValidationError / TransportError / ApiError / DecodeError，
            抛出时历史与调用前完全一致。
        """

        message = prompt if isinstance(prompt, Message) else Message.user(prompt)
        model = model or getattr(self._settings, "default_model", "gpt-4")
        max_tokens = max_tokens if max_tokens is not None else getattr(self._settings, "max_tokens", 256)
        temperature = temperature if temperature is not None else getattr(self._settings, "temperature", 0.6)
        stop_list = list(stop) if stop is not None else [STOP_STRING]
        model = self._validate(model, max_tokens, temperature, n, stop_list)

        log_ctx: Dict[str, Any] = {
            "trace_id": f"tr-{uuid4().hex}",
            "provider": self._provider_client.name,
            "model": model,
        }
        with self._call_lock:
            start_time = time.time()
            try:
                with self._conversation.stage(message):
                    req = ChatRequest(
                        model=model,
                        messages=self._build_messages(),
                        max_tokens=max_tokens,
                        stop=stop_list,
                        temperature=temperature,
                        n=n,
                    )
                    self._log(logging.INFO, "Sending completion request", log_ctx, messages=len(req.messages))
                    response = self._provider_client.chat(req)
            except BusinessError as e:
                self._log(
                    logging.WARNING,
                    "Completion failed, prompt rolled back",
                    log_ctx,
                    error_type=type(e).__name__,
                    code=e.code,
                    error=e.message,
                    history=len(self._conversation),
                )
                raise

        self._log(
            logging.INFO,
            "Completion succeeded",
            log_ctx,
            choices=len(response.choices),
            total_tokens=response.usage.total_tokens,
            latency_ms=int((time.time() - start_time) * 1000),
        )
        return response

    def get_completion(
        self,
        prompt: Union[Message, str],
        *,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        stop: Optional[Sequence[str]] = None,
        temperature: Optional[float] = None,
        n: int = 1,
        callback: Optional[CompletionCallback] = None,
    ) -> "Future[CompletionResult]":
        """异步执行一次补全，结果通过 callback 交给调用方。

        callback 在后台工作线程中执行，UI 更新需要调用方自行切回主线程。
        返回的 Future 在任务开始前被取消时，callback 收到 TransportError(CANCELLED)。
        """

        params = dict(model=model, max_tokens=max_tokens, stop=stop, temperature=temperature, n=n)
        future = self._executor.submit(self._run, prompt, params, callback)
        if callback is not None:
            future.add_done_callback(lambda f: self._notify_cancelled(f, callback))
        return future

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "CompletionManager":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _run(
        self,
        prompt: Union[Message, str],
        params: Dict[str, Any],
        callback: Optional[CompletionCallback],
    ) -> CompletionResult:
        try:
            response = self.complete(prompt, **params)
            result = CompletionResult(choices=response.choices, usage=response.usage)
        except BusinessError as e:
            result = CompletionResult(error=e)
        except Exception as e:
            # 非业务异常同样要交给回调，历史已由 stage 撤销
            logger.exception("Unexpected completion failure", extra={"extra": {"error_type": type(e).__name__}})
            result = CompletionResult(
                error=BusinessError(code="UNEXPECTED_ERROR", message=str(e) or type(e).__name__, http_status=500)
            )
        if callback is not None:
            callback(result)
        return result

    @staticmethod
    def _notify_cancelled(future: Future, callback: CompletionCallback) -> None:
        if future.cancelled():
            callback(CompletionResult(error=TransportError(code="CANCELLED", message="completion cancelled")))

    def _build_messages(self) -> List[Message]:
        """构造请求消息：可选的 system 消息 + 窗口内的历史。"""

        max_context = getattr(self._settings, "max_context_messages", 20)
        messages: List[Message] = []
        system_prompt = getattr(self._settings, "system_prompt", None)
        if system_prompt:
            messages.append(Message.system(system_prompt))
        messages.extend(self._conversation.window(max_context))
        return messages

    @staticmethod
    def _validate(model: str, max_tokens: int, temperature: float, n: int, stop: List[str]) -> str:
        """校验参数，返回 registry 中的规范模型名。"""

        try:
            model_cfg = get_model_config(model)
        except KeyError:
            raise ValidationError(code="INVALID_MODEL", message=f"Unsupported model: {model!r}")
        if max_tokens < 1:
            raise ValidationError(code="INVALID_MAX_TOKENS", message="max_tokens must be >= 1")
        if not MIN_TEMPERATURE <= temperature <= MAX_TEMPERATURE:
            raise ValidationError(
                code="INVALID_TEMPERATURE",
                message=f"temperature must be within [{MIN_TEMPERATURE}, {MAX_TEMPERATURE}]",
            )
        if n < 1:
            raise ValidationError(code="INVALID_N", message="n must be >= 1")
        if not all(isinstance(s, str) for s in stop):
            raise ValidationError(code="INVALID_STOP", message="stop sequences must be strings")
        return model_cfg.name

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
