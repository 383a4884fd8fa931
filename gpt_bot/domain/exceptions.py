"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在 UI 层做统一捕获与用户提示。

一次补全调用的失败只有三类：

- TransportError: 请求没有拿到响应（网络错误、超时、取消）。
- ApiError: Provider 返回了格式正确的错误体。
- DecodeError: 响应体既不是错误格式也不是成功格式。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "NETWORK_ERROR"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 type、provider 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class TransportError(BusinessError):
    """网络层错误，例如连接失败、请求被取消等。"""


class RequestTimeoutError(TransportError):
    """请求超时，属于 TransportError 的一种。"""


class ApiError(BusinessError):
    """Provider 返回了错误响应体（{"error": {...}}）或非 2xx 状态码。"""

    @property
    def type(self):
        return self.extra.get("type")


class RateLimitError(ApiError):
    """Provider 限流错误（HTTP 429）。"""


class DecodeError(BusinessError):
    """响应体无法解析为预期的成功结构。"""


class ValidationError(BusinessError):
    """参数或配置校验失败。"""
