import dataclasses

import pytest

from gpt_bot.domain.exceptions import ValidationError
from gpt_bot.domain.models import STOP_STRING, ChatRequest, CompletionResult, Message


def test_message_is_immutable():
    m = Message(role="user", content="hi")
    with pytest.raises(dataclasses.FrozenInstanceError):
        m.content = "changed"


def test_message_rejects_unknown_role():
    with pytest.raises(ValidationError) as exc:
        Message(role="tool", content="x")
    assert exc.value.code == "INVALID_ROLE"


def test_message_helpers():
    assert Message.user("a") == Message(role="user", content="a")
    assert Message.system("s").to_payload() == {"role": "system", "content": "s"}


def test_chat_request_defaults_and_stop_dedup():
    req = ChatRequest(model="gpt-4", messages=[Message.user("hi")], stop=["a", "b", "a"])
    assert req.stop == ["a", "b"]
    assert req.n == 1
    assert ChatRequest(model="gpt-4", messages=[]).stop == [STOP_STRING]


def test_completion_result_ok_flag():
    assert CompletionResult(choices=[]).ok
    assert not CompletionResult(error=ValidationError(code="X", message="x")).ok
