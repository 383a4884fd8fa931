"""Provider 与模型配置。

客户端只面向 OpenAI 的 chat/completions 接口，这里集中列出允许使用的模型，
请求构造前据此校验模型名，避免把任意字符串发给接口。"""

from dataclasses import dataclass
from typing import Dict


@dataclass
class ModelConfig:
    """单个模型的配置。"""

    name: str
    description: str
    max_tokens: int


@dataclass
class ProviderConfig:
    """Provider 的整体配置。"""

    name: str
    base_url: str
    models: Dict[str, ModelConfig]


OPENAI_CONFIG = ProviderConfig(
    name="openai",
    base_url="https://api.openai.com/v1",
    models={
        "gpt-4": ModelConfig(
            name="gpt-4",
            description="More capable than any GPT-3.5 model, optimized for chat.",
            max_tokens=8192,
        ),
        "gpt-3.5-turbo": ModelConfig(
            name="gpt-3.5-turbo",
            description="Most capable GPT-3.5 model, optimized for chat.",
            max_tokens=4096,
        ),
    },
)


def get_model_config(name: str) -> ModelConfig:
    """根据名称获取 ModelConfig，名称不区分大小写。"""

    key = name.lower()
    for k, cfg in OPENAI_CONFIG.models.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown model: {name!r}")
