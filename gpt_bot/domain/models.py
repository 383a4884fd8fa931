"""统一的对话与结果数据模型。

本模块定义了客户端内部使用的标准数据结构：

- Message: 一条对话消息（system/user/assistant），构造后不可变。
- ChatRequest: 发给 chat/completions 接口的完整请求。
- ChatCompletionResponse: 解析后的成功响应（usage + choices）。
- ApiErrorBody: 解析后的错误响应（{"error": {...}}）。
- CompletionResult: 交给回调的最终结果，成功或失败二选一。

Provider 适配层负责在 API JSON 和这些模型之间做转换。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple, TYPE_CHECKING, get_args

from gpt_bot.domain.exceptions import ValidationError

if TYPE_CHECKING:
    from gpt_bot.domain.exceptions import BusinessError


# 消息角色类型（与 OpenAI 的 role 字段对应）
Role = Literal["assistant", "system", "user"]
ROLES: Tuple[str, ...] = get_args(Role)

# 约定的停止串：界面层会把它追加到用户输入末尾，并作为默认 stop 传给接口
STOP_STRING = "@#+_!"


@dataclass(frozen=True)
class Message:
    """一条对话消息。

    - role: 消息角色，只能是 assistant/system/user。
    - content: 纯文本内容。

    frozen=True 保证消息追加进会话后不会再被修改。
    """

    role: Role
    content: str

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValidationError(code="INVALID_ROLE", message=f"Unknown message role: {self.role!r}")

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role="user", content=content)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role="system", content=content)

    def to_payload(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class ChatRequest:
    """一次完整的聊天请求，每次调用新建，不做保留。

    stop 在内存中是有序、去重的字符串列表；n 为每个 prompt 生成的候选数。
    """

    model: str
    messages: List[Message]
    max_tokens: int = 256
    stop: List[str] = field(default_factory=lambda: [STOP_STRING])
    temperature: float = 0.6
    n: int = 1

    def __post_init__(self) -> None:
        # 保留首次出现的顺序去重
        self.stop = list(dict.fromkeys(self.stop))


@dataclass(frozen=True)
class ChatUsage:
    """Provider 返回的 token 统计信息。"""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass(frozen=True)
class ChatChoice:
    """单个候选回答。"""

    index: int
    message: Message
    finish_reason: str


@dataclass
class ChatCompletionResponse:
    """一次成功调用的解析结果。

    - usage: token 使用统计。
    - choices: 一个或多个候选回答，保持接口返回的顺序。
    - raw: 原始响应 JSON，用于调试或日志记录。
    """

    usage: ChatUsage
    choices: List[ChatChoice]
    raw: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class ApiErrorBody:
    """错误响应体 {"error": {"message", "type"?, "code"?}}。"""

    message: str
    type: Optional[str] = None
    code: Optional[str] = None


@dataclass
class CompletionResult:
    """交给回调的结果：choices 与 error 只会有一个非空。"""

    choices: Optional[List[ChatChoice]] = None
    error: Optional["BusinessError"] = None
    usage: Optional[ChatUsage] = None

    @property
    def ok(self) -> bool:
        return self.error is None
