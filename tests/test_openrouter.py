"""
Tests for the OpenRouter narrative client against a mocked transport.
"""

import json

import httpx
import pytest

from core.errors import NarrativeServiceError
from plugins.ai_providers.openrouter import OpenRouterProvider


def _provider(handler, api_key: str = "sk-test", **kwargs) -> OpenRouterProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OpenRouterProvider(api_key=api_key, client=client, **kwargs)


def _completion(content) -> dict:
    return {
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 120, "completion_tokens": 80},
    }


class TestOpenRouterProvider:

    @pytest.mark.asyncio
    async def test_returns_message_content(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers["Authorization"]
            seen["title"] = request.headers["X-Title"]
            return httpx.Response(200, json=_completion('{"marketMood": "mixed"}'))

        provider = _provider(handler, model="openai/gpt-4o", temperature=0.4, max_tokens=2000)
        text = await provider.complete([{"role": "user", "content": "hi"}])

        assert text == '{"marketMood": "mixed"}'
        assert seen["body"] == {
            "model": "openai/gpt-4o",
            "messages": [{"role": "user", "content": "hi"}],
            "temperature": 0.4,
            "max_tokens": 2000,
        }
        assert seen["auth"] == "Bearer sk-test"
        assert seen["title"] == "MarketBrief"
        await provider.close()

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        provider = _provider(lambda request: httpx.Response(429, text="rate limited"))
        with pytest.raises(NarrativeServiceError) as exc:
            await provider.complete([{"role": "user", "content": "hi"}])
        assert exc.value.status_code == 429

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        provider = _provider(handler)
        with pytest.raises(NarrativeServiceError) as exc:
            await provider.complete([{"role": "user", "content": "hi"}])
        assert exc.value.status_code is None

    @pytest.mark.asyncio
    async def test_missing_content(self):
        provider = _provider(lambda request: httpx.Response(200, json={"choices": []}))
        with pytest.raises(NarrativeServiceError):
            await provider.complete([{"role": "user", "content": "hi"}])

    @pytest.mark.asyncio
    async def test_empty_content(self):
        provider = _provider(lambda request: httpx.Response(200, json=_completion("")))
        with pytest.raises(NarrativeServiceError):
            await provider.complete([{"role": "user", "content": "hi"}])

    @pytest.mark.asyncio
    async def test_missing_api_key_never_calls_out(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=_completion("x"))

        provider = _provider(handler, api_key="")
        with pytest.raises(NarrativeServiceError):
            await provider.complete([{"role": "user", "content": "hi"}])
        assert calls == []

    def test_identity(self):
        provider = _provider(lambda request: httpx.Response(200), model="anthropic/claude-3.5-sonnet")
        assert provider.name == "openrouter"
        assert provider.model == "anthropic/claude-3.5-sonnet"
