"""Shared fakes for the report pipeline tests."""

from __future__ import annotations

import asyncio
import json

import pytest

from core.models.market import PriceSeries
from core.models.sources import SourceResult


class FakeFetcher:
    """Source fetcher returning a canned result, raising, or stalling."""

    def __init__(self, name: str, result=None, exc: Exception | None = None, delay: float = 0.0):
        self._name = name
        self._result = result
        self._exc = exc
        self._delay = delay
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    async def fetch(self):
        self.calls += 1
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._exc is not None:
            raise self._exc
        return self._result


class FakeLLM:
    """LLM provider returning a fixed reply (or raising) and recording prompts."""

    def __init__(self, reply: str = "", exc: Exception | None = None, model: str = "test/model"):
        self._reply = reply
        self._exc = exc
        self._model = model
        self.prompts: list[str] = []

    @property
    def name(self) -> str:
        return "fake"

    @property
    def model(self) -> str:
        return self._model

    async def complete(self, messages: list[dict], **kwargs) -> str:
        self.prompts.append(messages[-1]["content"])
        if self._exc is not None:
            raise self._exc
        return self._reply


def rising_closes(n: int, start: float = 100.0, step: float = 1.0) -> list[float]:
    return [start + i * step for i in range(n)]


NARRATIVE = {
    "marketMood": "bullish",
    "summary": "Stocks rallied across the board.",
    "sentimentScore": 68,
    "riskScore": 35,
    "keyHighlights": ["S&P 500 up 1.2%"],
    "sectorOutlook": [{"sector": "Technology", "outlook": "bullish", "reason": "AI demand"}],
    "riskFactors": ["Sticky inflation"],
    "opportunities": ["Semiconductors"],
    "tradingStrategy": "Buy dips in quality tech.",
    "outlook": {"shortTerm": "Constructive", "mediumTerm": "Cautiously positive"},
}


@pytest.fixture
def narrative_reply() -> str:
    return "Here is today's report:\n```json\n" + json.dumps(NARRATIVE) + "\n```\nGood luck!"


@pytest.fixture
def history_only_sources() -> dict:
    """Every slot unconfigured except a valid 30-point benchmark history."""
    series = PriceSeries(symbol="^GSPC", closes=rising_closes(30))
    return {"price_history": FakeFetcher("history", SourceResult.ok(series))}
