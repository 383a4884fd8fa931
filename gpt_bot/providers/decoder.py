"""响应体解析。

接口的响应只有两种合法形态：

- 错误：{"error": {"message": ..., "type": ..., "code": ...}}
- 成功：{"usage": {...}, "choices": [{"message": {...}, "finish_reason": ..., "index": ...}]}

decode_response 返回带标签的结果：error 字段能解析为错误体时是 ApiErrorBody，
否则按成功结构解析（error 为 null 的成功响应也算成功），其余情况一律是 DecodeFailure。
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Union

from gpt_bot.domain.exceptions import ValidationError
from gpt_bot.domain.models import (
    ApiErrorBody,
    ChatChoice,
    ChatCompletionResponse,
    ChatUsage,
    Message,
)


@dataclass(frozen=True)
class DecodeFailure:
    """响应体不符合任何已知结构。"""

    reason: str


DecodeResult = Union[ChatCompletionResponse, ApiErrorBody, DecodeFailure]


class _SchemaMismatch(Exception):
    pass


def decode_response(body: Union[bytes, str, Mapping[str, Any]]) -> DecodeResult:
    """把原始响应体解析为 ChatCompletionResponse / ApiErrorBody / DecodeFailure。"""

    if isinstance(body, Mapping):
        data: Any = body
    else:
        try:
            data = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return DecodeFailure(reason=f"invalid JSON: {e}")

    if not isinstance(data, Mapping):
        return DecodeFailure(reason=f"expected a JSON object, got {type(data).__name__}")

    # error 字段存在且能解析时才算错误体，否则按成功结构解析
    if data.get("error") is not None:
        try:
            return _parse_error(data["error"])
        except _SchemaMismatch:
            pass
    try:
        return _parse_success(data)
    except _SchemaMismatch as e:
        return DecodeFailure(reason=str(e))


def _parse_error(raw: Any) -> ApiErrorBody:
    err = _expect_object(raw, "error")
    return ApiErrorBody(
        message=_expect_str(err, "message", "error"),
        type=_optional_str(err, "type", "error"),
        code=_optional_code(err.get("code")),
    )


def _parse_success(data: Mapping[str, Any]) -> ChatCompletionResponse:
    usage_raw = _expect_object(data.get("usage"), "usage")
    usage = ChatUsage(
        prompt_tokens=_expect_int(usage_raw, "prompt_tokens", "usage"),
        completion_tokens=_expect_int(usage_raw, "completion_tokens", "usage"),
        total_tokens=_expect_int(usage_raw, "total_tokens", "usage"),
    )
    choices_raw = data.get("choices")
    if not isinstance(choices_raw, list):
        raise _SchemaMismatch("'choices' must be a list")
    choices: List[ChatChoice] = []
    for i, ch in enumerate(choices_raw):
        where = f"choices[{i}]"
        ch = _expect_object(ch, where)
        choices.append(
            ChatChoice(
                index=_expect_int(ch, "index", where),
                message=_parse_message(ch.get("message"), f"{where}.message"),
                finish_reason=_expect_str(ch, "finish_reason", where),
            )
        )
    return ChatCompletionResponse(usage=usage, choices=choices, raw=dict(data))


def _parse_message(raw: Any, where: str) -> Message:
    msg = _expect_object(raw, where)
    try:
        return Message(role=_expect_str(msg, "role", where), content=_expect_str(msg, "content", where))
    except ValidationError as e:
        raise _SchemaMismatch(f"{where}: {e.message}")


def _expect_object(raw: Any, where: str) -> Dict[str, Any]:
    if not isinstance(raw, Mapping):
        raise _SchemaMismatch(f"'{where}' must be an object")
    return dict(raw)


def _expect_str(obj: Mapping[str, Any], key: str, where: str) -> str:
    value = obj.get(key)
    if not isinstance(value, str):
        raise _SchemaMismatch(f"'{where}.{key}' must be a string")
    return value


def _optional_str(obj: Mapping[str, Any], key: str, where: str):
    value = obj.get(key)
    if value is not None and not isinstance(value, str):
        raise _SchemaMismatch(f"'{where}.{key}' must be a string or null")
    return value


def _expect_int(obj: Mapping[str, Any], key: str, where: str) -> int:
    value = obj.get(key)
    # bool 是 int 的子类，这里要排除
    if not isinstance(value, int) or isinstance(value, bool):
        raise _SchemaMismatch(f"'{where}.{key}' must be an integer")
    return value


def _optional_code(value: Any):
    # OpenAI 的 code 偶尔是数字，统一转成字符串
    if value is None:
        return None
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        return str(value)
    raise _SchemaMismatch("'error.code' must be a string, number or null")
