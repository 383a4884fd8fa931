"""OpenAI Provider 适配器。

本模块负责：

1. 接收统一的 ChatRequest。
2. 将其转换为 chat/completions 的 HTTP 请求（snake_case 字段、Bearer 鉴权）。
3. 调用 HTTP 接口并把网络异常归类为 TransportError / RequestTimeoutError。
4. 用 decode_response 判定响应体，得到 ChatCompletionResponse，或抛出 ApiError / DecodeError。

本层只做一次请求，不重试，也不持有会话状态。
"""

from typing import Dict

import httpx

from gpt_bot.domain.exceptions import (
    ApiError,
    DecodeError,
    RateLimitError,
    RequestTimeoutError,
    TransportError,
    ValidationError,
)
from gpt_bot.domain.models import ApiErrorBody, ChatCompletionResponse, ChatRequest
from gpt_bot.providers.decoder import DecodeFailure, decode_response
from gpt_bot.providers.registry import OPENAI_CONFIG


def chat_completions_url(base_url: str) -> str:
    return f"{base_url.rstrip('/')}/chat/completions"


def build_headers(api_key: str) -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {api_key}",
    }


def build_payload(req: ChatRequest) -> dict:
    """将 ChatRequest 转成接口所需的请求 JSON。

    -d '{
      "model": "gpt-4",
      "messages": [{"role": "user", "content": "Say this is a test"}],
      "max_tokens": 100,
      "stop": ["\\n"],
      "temperature": 0.6,
      "n": 1
    }'
    """

    return {
        "model": req.model,
        "messages": [m.to_payload() for m in req.messages],
        "max_tokens": req.max_tokens,
        "stop": list(req.stop),
        "temperature": req.temperature,
        "n": req.n,
    }


class OpenAIChatClient:
    """OpenAI 提供方客户端实现。

    - name: Provider 名称（供日志/调试使用）。
    - chat: 对外统一调用入口，返回 ChatCompletionResponse。
    """

    name = "openai"

    def __init__(self, settings):
        # Settings 里包含 base_url、api_key、超时等配置
        self._settings = settings

    @property
    def base_url(self) -> str:
        return getattr(self._settings, "openai_base_url", None) or OPENAI_CONFIG.base_url

    def chat(self, req: ChatRequest) -> ChatCompletionResponse:
        """执行一次对话调用。

        步骤：
        1. 构造 HTTP 请求 payload 与 headers。
        2. 发送请求，网络错误/超时/取消统一包装为 TransportError。
        3. 判定响应体：错误体 -> ApiError，非 2xx -> ApiError，
           无法识别 -> DecodeError，否则返回解析结果。
        """

        api_key = getattr(self._settings, "openai_api_key", None)
        if not api_key:
            # 配置缺失走 ValidationError，方便上层统一处理
            raise ValidationError(code="MISSING_API_KEY", message="OPENAI_API_KEY not set")
        payload = build_payload(req)
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = client.post(
                    chat_completions_url(self.base_url),
                    json=payload,
                    headers=build_headers(api_key),
                )
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(code="TIMEOUT", message=str(e) or "request timed out", http_status=504) from e
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接被拒绝等
            raise TransportError(code="NETWORK_ERROR", message=str(e), http_status=503) from e

        status = resp.status_code
        result = decode_response(resp.content)
        if isinstance(result, ApiErrorBody):
            error_cls = RateLimitError if status == 429 else ApiError
            raise error_cls(
                code=result.code or "API_ERROR",
                message=result.message,
                http_status=status,
                type=result.type,
            )
        if status == 429:
            raise RateLimitError(code="RATE_LIMIT", message=resp.text, http_status=status)
        if status >= 400:
            raise ApiError(code=f"HTTP_{status}", message=resp.text, http_status=status)
        if isinstance(result, DecodeFailure):
            raise DecodeError(code="DECODE_ERROR", message=result.reason, http_status=status)
        return result
