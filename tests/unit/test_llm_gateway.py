from __future__ import annotations

import io
import json

import httpx
import pytest
from botocore.exceptions import ClientError
from pydantic import BaseModel

from config import LlmRoute
from llm_gateway import (
    BedrockProvider,
    ChatCompletionProvider,
    ProviderError,
    build_provider,
    generate_model,
    parse_json_object,
    strip_code_fences,
)


class _Resp:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class _Client:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.requests = []

    def post(self, url, *, json, headers, timeout):
        self.requests.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.exc:
            raise self.exc
        return self.response


def _route(**overrides):
    data = dict(name="openai-chat", base_url="https://llm.test/v1", model="gpt-test", api_key_env="TEST_KEY")
    data.update(overrides)
    return LlmRoute(**data)


def _chat_payload(content, usage=None):
    payload = {"choices": [{"message": {"content": content}}]}
    if usage:
        payload["usage"] = usage
    return payload


def test_chat_provider_posts_and_parses(monkeypatch):
    monkeypatch.setenv("TEST_KEY", "sk-test")
    client = _Client(_Resp(payload=_chat_payload("Hello there", {"prompt_tokens": 12, "completion_tokens": 3})))
    provider = ChatCompletionProvider(_route(temperature=0.5), client=client)
    result = provider.generate([{"role": "user", "content": "hi"}], {"max_tokens": 300})
    assert result.text == "Hello there"
    assert result.usage == {"input_tokens": 12, "output_tokens": 3}
    request = client.requests[0]
    assert request["url"] == "https://llm.test/v1/chat/completions"
    assert request["headers"]["Authorization"] == "Bearer sk-test"
    assert request["json"]["model"] == "gpt-test"
    assert request["json"]["temperature"] == 0.5
    assert request["json"]["max_tokens"] == 300
    assert request["timeout"] == 30.0


def test_chat_provider_json_mode_toggle():
    client = _Client(_Resp(payload=_chat_payload("{}")))
    ChatCompletionProvider(_route(), client=client).generate([], {"response_format": "json_object"})
    assert client.requests[0]["json"]["response_format"] == {"type": "json_object"}

    client = _Client(_Resp(payload=_chat_payload("{}")))
    ChatCompletionProvider(_route(name="sea-lion"), client=client, json_mode=False).generate(
        [], {"response_format": "json_object"}
    )
    assert "response_format" not in client.requests[0]["json"]


@pytest.mark.parametrize(
    "client",
    [
        _Client(exc=httpx.ReadTimeout("timed out")),
        _Client(_Resp(status_code=500)),
        _Client(_Resp(status_code=429)),
        _Client(_Resp(payload=ValueError("bad json"))),
        _Client(_Resp(payload={"choices": []})),
        _Client(_Resp(payload={"unexpected": True})),
    ],
)
def test_chat_provider_failures_raise_provider_error(client):
    with pytest.raises(ProviderError):
        ChatCompletionProvider(_route(), client=client).generate([{"role": "user", "content": "hi"}])


def test_malformed_messages_rejected():
    provider = ChatCompletionProvider(_route(), client=_Client(_Resp(payload=_chat_payload("x"))))
    with pytest.raises(ValueError):
        provider.generate([{"content": "no role"}])


class _Body:
    def __init__(self, payload):
        self._raw = io.BytesIO(json.dumps(payload).encode("utf-8"))

    def read(self):
        return self._raw.read()


class _Bedrock:
    def __init__(self, payload=None, exc=None):
        self.payload = payload
        self.exc = exc
        self.calls = []

    def invoke_model(self, **kwargs):
        self.calls.append(kwargs)
        if self.exc:
            raise self.exc
        return {"body": _Body(self.payload)}


def _bedrock_route():
    return LlmRoute(name="bedrock", kind="bedrock", model="anthropic.test", region="us-east-1", max_tokens=4000)


def test_bedrock_provider_builds_anthropic_body():
    client = _Bedrock({"content": [{"text": "Hi from Claude"}], "usage": {"input_tokens": 5, "output_tokens": 4}})
    provider = BedrockProvider(_bedrock_route(), client=client)
    history = [
        {"role": "system", "content": "You are an interviewer"},
        {"role": "assistant", "content": "Welcome!"},
        {"role": "user", "content": "Thanks"},
        {"role": "user", "content": "Ready"},
    ]
    result = provider.generate(history, {"temperature": 0.3})
    assert result.text == "Hi from Claude"
    assert result.usage == {"input_tokens": 5, "output_tokens": 4}
    call = client.calls[0]
    assert call["modelId"] == "anthropic.test"
    body = json.loads(call["body"])
    assert body["system"] == "You are an interviewer"
    assert body["temperature"] == 0.3
    assert body["max_tokens"] == 4000
    roles = [m["role"] for m in body["messages"]]
    assert roles == ["user", "assistant", "user"]
    assert body["messages"][-1]["content"] == "Thanks\n\nReady"


def test_bedrock_errors_become_provider_errors():
    error = ClientError({"Error": {"Code": "ThrottlingException", "Message": "slow down"}}, "InvokeModel")
    with pytest.raises(ProviderError):
        BedrockProvider(_bedrock_route(), client=_Bedrock(exc=error)).generate([{"role": "user", "content": "x"}])
    with pytest.raises(ProviderError):
        BedrockProvider(_bedrock_route(), client=_Bedrock({"content": []})).generate(
            [{"role": "user", "content": "x"}]
        )


def test_build_provider_selects_backend():
    assert isinstance(build_provider(_route(), client=_Client()), ChatCompletionProvider)
    assert isinstance(build_provider(_bedrock_route(), client=_Bedrock()), BedrockProvider)


class _Shape(BaseModel):
    answer: str


def test_generate_model_validates_and_repairs():
    client = _Client(_Resp(payload=_chat_payload('```json\n{"answer": "42",}\n```')))
    provider = ChatCompletionProvider(_route(), client=client)
    assert generate_model(provider, [{"role": "user", "content": "q"}], _Shape).answer == "42"


def test_generate_model_invalid_output_is_provider_error():
    client = _Client(_Resp(payload=_chat_payload("no json here")))
    with pytest.raises(ProviderError):
        generate_model(ChatCompletionProvider(_route(), client=client), [], _Shape)


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences("  plain  ") == "plain"


@pytest.mark.parametrize(
    "text, expected",
    [
        ('{"a": 1}', {"a": 1}),
        ('Sure! {"a": [1, 2,],} Thanks', {"a": [1, 2]}),
        ("```\n{\"a\": true}\n```", {"a": True}),
        ("[1, 2]", None),
        ("nothing", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_json_object(text, expected):
    assert parse_json_object(text) == expected


def test_parse_json_object_rejects_pathological_nesting():
    assert parse_json_object("[" * 100000) is None
    assert parse_json_object('{"a": ' * 50000) is None
