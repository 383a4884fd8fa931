"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护可用模型配置 (registry)。
- 解析接口响应体 (decoder)。
- 提供 OpenAI 的具体实现 (openai_client)。
"""

from typing import Optional

from gpt_bot.config.settings import settings
from gpt_bot.providers.base import ProviderClient
from gpt_bot.providers.openai_client import OpenAIChatClient


def create_provider(provider_settings: Optional[object] = None) -> ProviderClient:
    """创建 Provider 实例，默认使用全局配置。"""

    return OpenAIChatClient(provider_settings or settings)
