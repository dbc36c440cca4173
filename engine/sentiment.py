"""Keyword-based headline tagging used for the news slot."""

from __future__ import annotations

from collections.abc import Iterable

from core.models.market import NewsItem

_BULLISH = (
    "surge", "jump", "soar", "rally", "gain", "up", "rise", "beat", "record",
    "strong", "growth", "positive", "bullish", "buy", "upgrade", "outperform",
    "breakout", "momentum", "high", "profit",
)
_BEARISH = (
    "fall", "drop", "plunge", "decline", "down", "loss", "miss", "weak",
    "negative", "bearish", "sell", "crash", "tumble", "slump", "downgrade",
    "warning", "concern", "risk", "low", "cut",
)
_MACRO = ("fed", "rate", "inflation", "economic", "gdp")
_EARNINGS = ("earnings", "revenue", "profit", "quarterly")


def headline_sentiment(text: str) -> str:
    lowered = text.lower()
    bullish = sum(1 for kw in _BULLISH if kw in lowered)
    bearish = sum(1 for kw in _BEARISH if kw in lowered)
    if bullish > bearish:
        return "bullish"
    if bearish > bullish:
        return "bearish"
    return "neutral"


def headline_category(text: str) -> str:
    lowered = text.lower()
    if any(kw in lowered for kw in _MACRO):
        return "Macro"
    if any(kw in lowered for kw in _EARNINGS):
        return "Earnings"
    return "Market"


def sentiment_breakdown(items: Iterable[NewsItem]) -> dict[str, int]:
    counts = {"bullish": 0, "bearish": 0, "neutral": 0}
    for item in items:
        counts[item.sentiment] += 1
    return counts
