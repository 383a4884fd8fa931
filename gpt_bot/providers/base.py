"""Provider 抽象接口。

CompletionManager 不直接依赖 httpx，而是依赖此协议，
测试里可以用假的 ProviderClient 替换真实的 HTTP 实现。
"""

from typing import Protocol

from gpt_bot.domain.models import ChatCompletionResponse, ChatRequest


class ProviderClient(Protocol):
    """LLM Provider 客户端协议。

    实现者需要提供：
    - name: Provider 名称，用于日志。
    - chat(req): 执行一次调用，返回 ChatCompletionResponse；
      失败时抛出 domain.exceptions 中的 BusinessError 子类。
    """

    name: str

    def chat(self, req: ChatRequest) -> ChatCompletionResponse:
        ...
