"""OpenRouter LLM provider -- unified API for many models via a single endpoint.

OpenRouter provides access to OpenAI, Anthropic, Google, Meta, and many other
models through one API. Uses OpenAI-compatible chat completions format.

Single attempt per call: any transport error, non-2xx status, timeout or
empty reply raises NarrativeServiceError.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from core.errors import NarrativeServiceError, truncate

logger = logging.getLogger(__name__)

_DEFAULT_URL = "https://openrouter.ai/api/v1/chat/completions"


class OpenRouterProvider:
    """LLM provider for OpenRouter's unified API.

    Implements the LLMProvider protocol. Uses OpenAI-compatible format.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "openai/gpt-4o",
        base_url: str = _DEFAULT_URL,
        max_tokens: int = 2000,
        temperature: float = 0.4,
        timeout: float = 45.0,
        site_name: str = "MarketBrief",
        site_url: str = "http://localhost:8321",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timeout = timeout
        self._url = base_url
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": site_url,
            "X-Title": site_name,
        }

    @property
    def name(self) -> str:
        return "openrouter"

    @property
    def model(self) -> str:
        return self._model

    async def complete(self, messages: list[dict], **kwargs: Any) -> str:
        """Send messages and return the text response."""
        if not self._api_key:
            raise NarrativeServiceError("OpenRouter API key is not configured")

        body = {
            "model": self._model,
            "messages": messages,
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
        }

        try:
            response = await asyncio.wait_for(
                self._client.post(self._url, json=body, headers=self._headers),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            raise NarrativeServiceError(
                f"OpenRouter did not answer within {self._timeout:.0f}s"
            ) from e
        except httpx.HTTPError as e:
            raise NarrativeServiceError(f"OpenRouter transport error: {e}") from e

        if response.status_code >= 400:
            logger.warning(
                "OpenRouter returned %d: %s", response.status_code, truncate(response.text, 300)
            )
            raise NarrativeServiceError(
                f"OpenRouter returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise NarrativeServiceError(
                "OpenRouter reply has no message content", status_code=response.status_code
            ) from e

        if not content:
            raise NarrativeServiceError(
                "OpenRouter returned an empty message", status_code=response.status_code
            )

        usage = data.get("usage") or {}
        logger.info(
            "OpenRouter %s: %s prompt / %s completion tokens",
            self._model,
            usage.get("prompt_tokens", "?"),
            usage.get("completion_tokens", "?"),
        )
        return content

    async def close(self) -> None:
        await self._client.aclose()
