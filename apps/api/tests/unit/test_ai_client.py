"""Unit tests for the chat-completions client and the prompt classifier."""

import json

import httpx
import pytest

from formloom_api.ai.classifier import evaluate_prompt_is_form_related
from formloom_api.ai.client import (
    AIConfigurationError,
    AIProviderError,
    ChatCompletionClient,
)


def _client(handler, api_key="sk-test-key-123456"):
    return ChatCompletionClient(
        api_key=api_key,
        base_url="https://ai.test/v1/",
        model="gpt-4o-mini",
        transport=httpx.MockTransport(handler),
    )


def _completion(content, usage=None):
    body = {"choices": [{"message": {"content": content}}]}
    if usage is not None:
        body["usage"] = usage
    return httpx.Response(200, json=body)


class TestChatCompletionClient:
    @pytest.mark.asyncio
    async def test_request_shape_and_usage(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return _completion("hello", {"prompt_tokens": 12, "completion_tokens": 3})

        result = await _client(handler).complete(
            [{"role": "user", "content": "hi"}], temperature=0.7, max_tokens=500
        )

        assert seen["url"] == "https://ai.test/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test-key-123456"
        assert seen["body"] == {
            "model": "gpt-4o-mini",
            "messages": [{"role": "user", "content": "hi"}],
            "temperature": 0.7,
            "max_tokens": 500,
        }
        assert result.content == "hello"
        assert result.usage.prompt_tokens == 12
        assert result.usage.completion_tokens == 3

    @pytest.mark.asyncio
    async def test_missing_usage_is_none(self):
        result = await _client(lambda r: _completion("ok")).complete([], temperature=0, max_tokens=1)

        assert result.usage is None

    @pytest.mark.asyncio
    async def test_provider_error_message_is_surfaced(self):
        def handler(request):
            return httpx.Response(401, json={"error": {"message": "Incorrect API key provided"}})

        with pytest.raises(AIProviderError, match="Incorrect API key provided"):
            await _client(handler).complete([], temperature=0, max_tokens=1)

    @pytest.mark.asyncio
    async def test_non_json_error_body(self):
        with pytest.raises(AIProviderError, match="OpenAI API error"):
            await _client(lambda r: httpx.Response(502, text="Bad gateway")).complete(
                [], temperature=0, max_tokens=1
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, text="<html>gateway</html>"),
            httpx.Response(200, json=["not", "an", "object"]),
        ],
    )
    async def test_invalid_success_body(self, response):
        with pytest.raises(AIProviderError, match="OpenAI API returned an invalid response"):
            await _client(lambda r: response).complete([], temperature=0, max_tokens=1)

    @pytest.mark.asyncio
    async def test_empty_content(self):
        with pytest.raises(AIProviderError, match="No content from AI"):
            await _client(lambda r: _completion("")).complete([], temperature=0, max_tokens=1)

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(AIProviderError):
            await _client(handler).complete([], temperature=0, max_tokens=1)

    @pytest.mark.asyncio
    async def test_unconfigured_client_never_calls_out(self):
        calls = []

        def handler(request):
            calls.append(request)
            return _completion("x")

        with pytest.raises(AIConfigurationError, match="OpenAI API key not configured"):
            await _client(handler, api_key=None).complete([], temperature=0, max_tokens=1)
        assert calls == []

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env-key-abcdef")
        monkeypatch.setenv("OPENAI_BASE_URL", "https://proxy.internal/v1/")
        monkeypatch.delenv("OPENAI_MODEL", raising=False)

        client = ChatCompletionClient.from_env()

        assert client.configured
        assert client.base_url == "https://proxy.internal/v1"
        assert client.model == "gpt-4o-mini"


class TestClassifier:
    @pytest.mark.asyncio
    async def test_yes_and_no(self):
        assert await evaluate_prompt_is_form_related(_client(lambda r: _completion("YES")), "a form") is True
        assert await evaluate_prompt_is_form_related(_client(lambda r: _completion("No.")), "a poem") is False

    @pytest.mark.asyncio
    async def test_classifier_request_settings(self):
        seen = {}

        def handler(request):
            seen.update(json.loads(request.content))
            return _completion("YES")

        await evaluate_prompt_is_form_related(_client(handler), "Survey about coffee habits")

        assert seen["temperature"] == 0.1
        assert seen["max_tokens"] == 10
        assert "Survey about coffee habits" in seen["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_fails_open_on_provider_error(self, caplog):
        client = _client(lambda r: httpx.Response(500, json={"error": {"message": "overloaded"}}))

        assert await evaluate_prompt_is_form_related(client, "anything at all") is True
        assert any(getattr(r, "event", None) == "ai.classifier.failed_open" for r in caplog.records)

    @pytest.mark.asyncio
    async def test_missing_key_is_not_swallowed(self):
        with pytest.raises(AIConfigurationError):
            await evaluate_prompt_is_form_related(_client(lambda r: _completion("YES"), api_key=""), "form")
