"""Tests for the language-model clients."""

import json
from types import SimpleNamespace

import anthropic
import httpx
import pytest

from kasku_agents.config import LLMConfig, LLMProvider
from kasku_agents.interfaces import LLMClientProtocol
from kasku_agents.llm_client import AnthropicClient, ChatCompletionClient, create_llm_client
from kasku_core.exceptions import ExternalServiceDegradedError

CHAT_URL = "https://llm.test/v1/chat/completions"


def _chat_client(handler):
    return ChatCompletionClient(
        "sk-test",
        "test/model",
        base_url=CHAT_URL,
        referer="http://kasku.test",
        app_title="Kasku",
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


def _complete(client):
    return client.complete("sistem", "pengguna", timeout=5, temperature=0.15, max_tokens=100)


class TestChatCompletionClient:
    """Test suite for the OpenAI-compatible client."""

    def test_success(self):
        seen = {}

        def handler(request):
            seen["request"] = request
            return httpx.Response(
                200, json={"choices": [{"message": {"content": '{"summary": "ok"}'}}]}
            )

        client = _chat_client(handler)

        assert _complete(client) == '{"summary": "ok"}'
        request = seen["request"]
        assert str(request.url) == CHAT_URL
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert request.headers["HTTP-Referer"] == "http://kasku.test"
        assert request.headers["X-Title"] == "Kasku"
        body = json.loads(request.content)
        assert body["model"] == "test/model"
        assert body["temperature"] == 0.15
        assert body["max_tokens"] == 100
        assert [m["role"] for m in body["messages"]] == ["system", "user"]
        assert isinstance(client, LLMClientProtocol)

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ExternalServiceDegradedError) as exc_info:
            _complete(_chat_client(handler))

        assert "timed out" in exc_info.value.message
        assert exc_info.value.provider == "openrouter"
        assert exc_info.value.status_code is None

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ExternalServiceDegradedError) as exc_info:
            _complete(_chat_client(handler))

        assert exc_info.value.message == "LLM transport error"

    def test_error_status(self):
        def handler(request):
            return httpx.Response(429, json={"error": {"message": "Rate limit exceeded"}})

        with pytest.raises(ExternalServiceDegradedError) as exc_info:
            _complete(_chat_client(handler))

        assert exc_info.value.status_code == 429
        assert exc_info.value.api_error == "Rate limit exceeded"

    def test_error_status_with_text_body(self):
        def handler(request):
            return httpx.Response(502, text="Bad Gateway")

        with pytest.raises(ExternalServiceDegradedError) as exc_info:
            _complete(_chat_client(handler))

        assert exc_info.value.api_error == "Bad Gateway"

    def test_body_not_json(self):
        def handler(request):
            return httpx.Response(200, text="<html>oops</html>")

        with pytest.raises(ExternalServiceDegradedError, match="not JSON"):
            _complete(_chat_client(handler))

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"choices": []},
            {"choices": [{"message": {"content": "   "}}]},
            {"choices": [{"message": {"content": None}}]},
            ["not", "an", "object"],
        ],
    )
    def test_missing_content(self, body):
        def handler(request):
            return httpx.Response(200, json=body)

        with pytest.raises(ExternalServiceDegradedError, match="no content"):
            _complete(_chat_client(handler))

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            ChatCompletionClient("", "m", base_url=CHAT_URL)


def _anthropic_client(create):
    fake = SimpleNamespace(messages=SimpleNamespace(create=create))
    return AnthropicClient("sk-ant-test", "claude-test", client=fake)


class TestAnthropicClient:
    """Test suite for the Messages API client."""

    def test_joins_text_blocks(self):
        calls = []

        def create(**kwargs):
            calls.append(kwargs)
            return SimpleNamespace(
                content=[
                    SimpleNamespace(type="text", text='{"a": '),
                    SimpleNamespace(type="tool_use", text="ignored"),
                    SimpleNamespace(type="text", text="1}"),
                ]
            )

        assert _complete(_anthropic_client(create)) == '{"a": 1}'
        assert calls[0]["model"] == "claude-test"
        assert calls[0]["system"] == "sistem"
        assert calls[0]["timeout"] == 5
        assert calls[0]["messages"] == [{"role": "user", "content": "pengguna"}]

    def test_timeout(self):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")

        def create(**kwargs):
            raise anthropic.APITimeoutError(request=request)

        with pytest.raises(ExternalServiceDegradedError, match="timed out"):
            _complete(_anthropic_client(create))

    def test_status_error(self):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        response = httpx.Response(529, request=request)

        def create(**kwargs):
            raise anthropic.APIStatusError("overloaded", response=response, body=None)

        with pytest.raises(ExternalServiceDegradedError) as exc_info:
            _complete(_anthropic_client(create))

        assert exc_info.value.status_code == 529
        assert exc_info.value.provider == "anthropic"

    def test_connection_error(self):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")

        def create(**kwargs):
            raise anthropic.APIConnectionError(request=request)

        with pytest.raises(ExternalServiceDegradedError, match="transport error"):
            _complete(_anthropic_client(create))

    def test_empty_reply(self):
        def create(**kwargs):
            return SimpleNamespace(content=[])

        with pytest.raises(ExternalServiceDegradedError, match="no content"):
            _complete(_anthropic_client(create))


class TestCreateLLMClient:
    def test_no_key_disables_client(self):
        assert create_llm_client(LLMConfig()) is None

    def test_openrouter(self):
        client = create_llm_client(
            LLMConfig(api_key="sk-or"),
            http_client=httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200))),
        )

        assert isinstance(client, ChatCompletionClient)
        assert client.base_url == LLMConfig().base_url

    def test_anthropic(self):
        fake = SimpleNamespace(messages=SimpleNamespace(create=lambda **kwargs: None))

        client = create_llm_client(
            LLMConfig(provider=LLMProvider.ANTHROPIC, api_key="sk-ant", model="claude-test"),
            client=fake,
        )

        assert isinstance(client, AnthropicClient)
        assert client.model == "claude-test"


class TestClientLifecycle:
    def test_owned_http_client_closed_on_exit(self):
        with ChatCompletionClient("sk-test", "m", base_url=CHAT_URL) as client:
            inner = client._client

        assert inner.is_closed

    def test_injected_http_client_left_open(self):
        http_client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))

        with ChatCompletionClient("sk-test", "m", base_url=CHAT_URL, http_client=http_client):
            pass

        assert not http_client.is_closed
        http_client.close()
