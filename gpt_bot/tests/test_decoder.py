import json

from gpt_bot.domain.models import ApiErrorBody, ChatCompletionResponse
from gpt_bot.providers.decoder import DecodeFailure, decode_response


SUCCESS_BODY = {
    "usage": {"prompt_tokens": 9, "completion_tokens": 16, "total_tokens": 25},
    "choices": [
        {
            "message": {"role": "assistant", "content": "hi"},
            "finish_reason": "stop",
            "index": 0,
        }
    ],
}


def test_decode_success_body():
    res = decode_response(json.dumps(SUCCESS_BODY).encode("utf-8"))
    assert isinstance(res, ChatCompletionResponse)
    assert len(res.choices) == 1
    assert res.choices[0].message.content == "hi"
    assert res.choices[0].message.role == "assistant"
    assert res.choices[0].finish_reason == "stop"
    assert res.usage.total_tokens == 25


def test_decode_error_body():
    res = decode_response('{"error":{"message":"bad key","type":"invalid_request_error"}}')
    assert res == ApiErrorBody(message="bad key", type="invalid_request_error", code=None)


def test_decode_error_body_numeric_code():
    res = decode_response({"error": {"message": "m", "code": 500}})
    assert isinstance(res, ApiErrorBody)
    assert res.code == "500"


def test_decode_invalid_json():
    res = decode_response(b"<html>oops</html>")
    assert isinstance(res, DecodeFailure)
    assert "invalid JSON" in res.reason


def test_decode_wrong_shapes():
    assert isinstance(decode_response("[]"), DecodeFailure)
    assert isinstance(decode_response({"choices": []}), DecodeFailure)
    bad_choice = dict(SUCCESS_BODY, choices=[{"message": {"role": "assistant"}, "index": 0}])
    res = decode_response(bad_choice)
    assert isinstance(res, DecodeFailure)
    assert "choices[0].message.content" in res.reason


def test_decode_error_without_message_is_failure():
    assert isinstance(decode_response({"error": {"type": "x"}}), DecodeFailure)


def test_decode_unknown_role_is_failure():
    body = dict(SUCCESS_BODY, choices=[{"message": {"role": "tool", "content": "x"}, "finish_reason": "stop", "index": 0}])
    assert isinstance(decode_response(body), DecodeFailure)


def test_decode_success_with_null_error():
    res = decode_response(dict(SUCCESS_BODY, error=None))
    assert isinstance(res, ChatCompletionResponse)
    assert res.choices[0].message.content == "hi"


def test_decode_success_with_unparseable_error_field():
    res = decode_response(dict(SUCCESS_BODY, error="ignored"))
    assert isinstance(res, ChatCompletionResponse)


def test_decode_missing_finish_reason_is_failure():
    body = dict(SUCCESS_BODY, choices=[{"message": {"role": "assistant", "content": "hi"}, "index": 0}])
    res = decode_response(body)
    assert isinstance(res, DecodeFailure)
    assert "finish_reason" in res.reason
