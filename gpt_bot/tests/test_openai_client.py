import json

import httpx
import pytest

from gpt_bot.domain.exceptions import (
    ApiError,
    DecodeError,
    RateLimitError,
    RequestTimeoutError,
    TransportError,
    ValidationError,
)
from gpt_bot.domain.models import ChatRequest, Message
from gpt_bot.providers.openai_client import (
    OpenAIChatClient,
    build_headers,
    build_payload,
    chat_completions_url,
)


class SettingsStub:
    openai_api_key = "sk-test-key-123"
    http_timeout = 1.0
    openai_base_url = "https://api.openai.com/v1"


class Resp:
    def __init__(self, body, status_code=200):
        self.status_code = status_code
        self.text = body if isinstance(body, str) else json.dumps(body)
        self.content = self.text.encode("utf-8")


def make_client(resp=None, exc=None, captured=None):
    class Client:
        def __init__(self, *a, **kw):
            if captured is not None:
                captured["timeout"] = kw.get("timeout")

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def post(self, url, json=None, headers=None, **_):
            if captured is not None:
                captured.update(url=url, payload=json, headers=headers)
            if exc is not None:
                raise exc
            return resp

    return Client


OK_BODY = {
    "usage": {"prompt_tokens": 1, "completion_tokens": 1, "total_tokens": 2},
    "choices": [{"message": {"role": "assistant", "content": "ok"}, "finish_reason": "stop", "index": 0}],
}


def _req():
    return ChatRequest(model="gpt-4", messages=[Message.user("hi")], max_tokens=100, stop=["\n"], temperature=0.6)


def test_build_payload_uses_snake_case_and_round_trips():
    req = ChatRequest(
        model="gpt-3.5-turbo",
        messages=[Message.system("s"), Message.user("u")],
        max_tokens=64,
        stop=["@", "#"],
        temperature=1.2,
        n=2,
    )
    wire = json.loads(json.dumps(build_payload(req)))
    assert set(wire) == {"model", "messages", "max_tokens", "stop", "temperature", "n"}
    decoded = ChatRequest(
        model=wire["model"],
        messages=[Message(**m) for m in wire["messages"]],
        max_tokens=wire["max_tokens"],
        stop=wire["stop"],
        temperature=wire["temperature"],
        n=wire["n"],
    )
    assert decoded == req


def test_headers_and_url():
    assert build_headers("k") == {"Content-Type": "application/json", "Authorization": "Bearer k"}
    assert chat_completions_url("https://api.openai.com/v1/") == "https://api.openai.com/v1/chat/completions"


def test_chat_success(monkeypatch):
    captured = {}
    monkeypatch.setattr("httpx.Client", make_client(resp=Resp(OK_BODY), captured=captured))
    res = OpenAIChatClient(SettingsStub()).chat(_req())
    assert res.choices[0].message.content == "ok"
    assert captured["url"] == "https://api.openai.com/v1/chat/completions"
    assert captured["headers"]["Authorization"] == "Bearer sk-test-key-123"
    assert captured["payload"]["stop"] == ["\n"]
    assert captured["timeout"] == 1.0


def test_chat_missing_key():
    class NoKey(SettingsStub):
        openai_api_key = None

    with pytest.raises(ValidationError) as exc:
        OpenAIChatClient(NoKey()).chat(_req())
    assert exc.value.code == "MISSING_API_KEY"


def test_chat_timeout(monkeypatch):
    monkeypatch.setattr("httpx.Client", make_client(exc=httpx.ReadTimeout("timed out")))
    with pytest.raises(RequestTimeoutError) as exc:
        OpenAIChatClient(SettingsStub()).chat(_req())
    assert exc.value.code == "TIMEOUT"
    assert isinstance(exc.value, TransportError)


def test_chat_network_error(monkeypatch):
    monkeypatch.setattr("httpx.Client", make_client(exc=httpx.ConnectError("refused")))
    with pytest.raises(TransportError) as exc:
        OpenAIChatClient(SettingsStub()).chat(_req())
    assert exc.value.code == "NETWORK_ERROR"
    assert not isinstance(exc.value, RequestTimeoutError)


def test_chat_error_body(monkeypatch):
    body = {"error": {"message": "bad key", "type": "invalid_request_error", "code": "invalid_api_key"}}
    monkeypatch.setattr("httpx.Client", make_client(resp=Resp(body, status_code=401)))
    with pytest.raises(ApiError) as exc:
        OpenAIChatClient(SettingsStub()).chat(_req())
    assert exc.value.message == "bad key"
    assert exc.value.code == "invalid_api_key"
    assert exc.value.type == "invalid_request_error"
    assert exc.value.http_status == 401


def test_chat_error_body_with_200_status(monkeypatch):
    body = {"error": {"message": "bad key", "type": "invalid_request_error"}}
    monkeypatch.setattr("httpx.Client", make_client(resp=Resp(body)))
    with pytest.raises(ApiError) as exc:
        OpenAIChatClient(SettingsStub()).chat(_req())
    assert exc.value.code == "API_ERROR"


def test_chat_rate_limit(monkeypatch):
    body = {"error": {"message": "slow down", "type": "requests"}}
    monkeypatch.setattr("httpx.Client", make_client(resp=Resp(body, status_code=429)))
    with pytest.raises(RateLimitError):
        OpenAIChatClient(SettingsStub()).chat(_req())


def test_chat_http_error_without_error_body(monkeypatch):
    monkeypatch.setattr("httpx.Client", make_client(resp=Resp("Bad Gateway", status_code=502)))
    with pytest.raises(ApiError) as exc:
        OpenAIChatClient(SettingsStub()).chat(_req())
    assert exc.value.code == "HTTP_502"
    assert exc.value.http_status == 502


def test_chat_undecodable_body(monkeypatch):
    monkeypatch.setattr("httpx.Client", make_client(resp=Resp({"unexpected": True})))
    with pytest.raises(DecodeError) as exc:
        OpenAIChatClient(SettingsStub()).chat(_req())
    assert exc.value.code == "DECODE_ERROR"
