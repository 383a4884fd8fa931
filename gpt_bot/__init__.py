"""GPT Bot 顶层包。

一个最小的 chat/completions 客户端：维护会话历史，
构造请求、调用接口、解析响应，失败时撤销本轮 prompt。
"""

from gpt_bot.api.manager import CompletionManager
from gpt_bot.domain.models import STOP_STRING, Message

__all__ = ["CompletionManager", "Message", "STOP_STRING"]
