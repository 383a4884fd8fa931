"""对外 API 服务模块。

提供简化的函数接口供界面层调用，界面只需要提交 prompt 并接收结果。
"""

from typing import Any, Dict, Optional

from gpt_bot.api.manager import CompletionCallback, CompletionManager
from gpt_bot.config.settings import settings
from gpt_bot.domain.models import STOP_STRING, CompletionResult, Message
from gpt_bot.infrastructure.logging.logger import logger
from gpt_bot.providers import create_provider


_manager: Optional[CompletionManager] = None


def get_default_manager() -> CompletionManager:
    """获取默认的 CompletionManager 实例（单例）。"""
    global _manager
    if _manager is None:
        _manager = CompletionManager(provider_client=create_provider(settings), settings=settings)
    return _manager


def build_prompt(text: str) -> Message:
    """把用户输入包装为 user 消息，并在末尾追加停止串。"""

    return Message.user(text + STOP_STRING)


def submit_prompt(text: str, callback: CompletionCallback, model: Optional[str] = None):
    """提交一次用户输入，结果在后台线程通过 callback 返回。

    Returns:
        concurrent.futures.Future，可用于取消尚未开始的请求。
    """

    return get_default_manager().get_completion(build_prompt(text), model=model, callback=callback)


def result_to_dict(result: CompletionResult) -> Dict[str, Any]:
    """把 CompletionResult 转成界面易用的字典。

    Returns:
        成功时包含 ok / content / choices / usage；
        失败时包含 ok / error_type / code / message。
    """
    if result.error is not None:
        err = result.error
        logger.error(f"Completion failed: {err.message}", extra={"extra": {
            "code": err.code,
            "error_type": type(err).__name__,
        }})
        return {
            "ok": False,
            "error_type": type(err).__name__,
            "code": err.code,
            "message": err.message,
        }
    choices = result.choices or []
    return {
        "ok": True,
        "content": choices[0].message.content if choices else "",
        "choices": [
            {
                "index": c.index,
                "role": c.message.role,
                "content": c.message.content,
                "finish_reason": c.finish_reason,
            }
            for c in choices
        ],
        "usage": {
            "prompt_tokens": result.usage.prompt_tokens,
            "completion_tokens": result.usage.completion_tokens,
            "total_tokens": result.usage.total_tokens,
        } if result.usage else None,
    }
