"""Prompt synthesis -- renders a snapshot and its indicators into the model request.

The section order and headers are fixed. Every snapshot slot is rendered,
with "N/A" standing in for missing values, so the model always sees the
same layout and the reply schema stays stable.
"""

from __future__ import annotations

from core.models.indicators import IndicatorSet
from core.models.market import (
    EconomicIndicator,
    MarketBreadth,
    MoversBoard,
    NewsItem,
    PriceSeries,
    Quote,
)
from core.models.sources import MarketSnapshot, SourceResult, SourceStatus
from engine.indicators import RSI_PERIOD
from engine.sentiment import sentiment_breakdown

NA = "N/A"
MAX_HEADLINES = 15

SYSTEM_INTRO = (
    "You are a senior financial analyst at a major investment bank. "
    "Analyze ALL of the following market data and produce a daily market report "
    "for professional traders. Be specific and reference actual numbers."
)

RESPONSE_SCHEMA = """Respond with a single JSON object and nothing else:
{
    "marketMood": "bullish" | "bearish" | "neutral" | "mixed",
    "summary": "3-4 sentence overview of today's market",
    "sentimentScore": 0-100,
    "riskScore": 0-100,
    "keyHighlights": ["highlight1", "highlight2", "highlight3"],
    "sectorOutlook": [
        {"sector": "Technology", "outlook": "bullish" | "bearish" | "neutral", "reason": "..."}
    ],
    "riskFactors": ["risk1", "risk2"],
    "opportunities": ["opportunity1", "opportunity2"],
    "tradingStrategy": "short actionable strategy note",
    "outlook": {"shortTerm": "...", "mediumTerm": "..."}
}

Sections marked DATA UNAVAILABLE had no data today; do not invent figures for them."""


def _fmt(value: float | None, fmt: str = ",.2f", suffix: str = "") -> str:
    if value is None:
        return NA
    return f"{value:{fmt}}{suffix}"


def _signed_pct(value: float | None) -> str:
    if value is None:
        return NA
    return f"{value:+.2f}%"


def _header(title: str, result: SourceResult) -> str:
    if result.status == SourceStatus.FAILED:
        return f"## {title} [DATA UNAVAILABLE: {result.error or 'unknown error'}]"
    if result.status == SourceStatus.DEGRADED:
        return f"## {title} [PARTIAL DATA: {result.error or 'incomplete'}]"
    return f"## {title}"


def _quote_lines(quotes: list[Quote], price_fmt: str = ",.2f") -> list[str]:
    if not quotes:
        return [NA]
    return [
        f"{q.name or q.symbol}: {_fmt(q.price, price_fmt)} ({_signed_pct(q.change_percent)})"
        for q in quotes
    ]


def _movers_lines(board: MoversBoard) -> list[str]:
    def join(quotes: list[Quote]) -> str:
        if not quotes:
            return NA
        return ", ".join(f"{q.symbol} {_signed_pct(q.change_percent)}" for q in quotes)

    return [
        f"Gainers: {join(board.gainers)}",
        f"Losers: {join(board.losers)}",
        f"Most active: {join(board.most_active)}",
    ]


def _economic_lines(indicators: list[EconomicIndicator]) -> list[str]:
    if not indicators:
        return [NA]
    lines = []
    for ind in indicators:
        value = _fmt(ind.value, ".2f", ind.unit if ind.unit == "%" else "")
        previous = _fmt(ind.previous_value, ".2f")
        change = _fmt(ind.change, "+.2f")
        as_of = ind.date or NA
        lines.append(f"- {ind.name}: {value} (previous {previous}, change {change}, as of {as_of})")
    return lines


def _news_lines(items: list[NewsItem]) -> list[str]:
    counts = sentiment_breakdown(items)
    total = len(items)
    denominator = total or 1
    lines = [f"Total articles: {total}"]
    for label in ("bullish", "bearish", "neutral"):
        share = counts[label] / denominator * 100
        lines.append(f"- {label.capitalize()}: {counts[label]} ({share:.0f}%)")
    lines.append("Recent headlines:")
    if not items:
        lines.append(NA)
    for idx, item in enumerate(items[:MAX_HEADLINES], start=1):
        lines.append(f"{idx}. [{item.sentiment.upper()}] [{item.category}] {item.headline}")
    return lines


def _breadth_lines(breadth: MarketBreadth, available: bool) -> list[str]:
    if not available:
        return [
            f"Advancing: {NA}",
            f"Declining: {NA}",
            f"Unchanged: {NA}",
            f"Near 52-week highs: {NA}",
            f"Near 52-week lows: {NA}",
            f"Above 200-day average: {NA}",
            f"Advance/decline ratio: {NA}",
        ]
    return [
        f"Advancing: {breadth.advancing}",
        f"Declining: {breadth.declining}",
        f"Unchanged: {breadth.unchanged}",
        f"Near 52-week highs: {breadth.new_highs}",
        f"Near 52-week lows: {breadth.new_lows}",
        f"Above 200-day average: {breadth.above_ma200_percent:.0f}%",
        f"Advance/decline ratio: {_fmt(breadth.advance_decline_ratio)}",
    ]


def _indicator_lines(indicators: IndicatorSet, series: PriceSeries) -> list[str]:
    macd = indicators.macd
    # Below the window the engine reports its neutral 50; that is not a reading.
    rsi = indicators.rsi if len(series) > RSI_PERIOD else None
    return [
        f"Last close: {_fmt(series.last)}",
        f"RSI ({RSI_PERIOD}): {_fmt(rsi, '.1f')}",
        f"SMA 20: {_fmt(indicators.sma20)}",
        f"SMA 50: {_fmt(indicators.sma50)}",
        f"EMA 12: {_fmt(indicators.ema12)}",
        f"EMA 26: {_fmt(indicators.ema26)}",
        f"MACD: {_fmt(macd.value if macd else None)}"
        f" (signal {_fmt(macd.signal if macd else None)},"
        f" histogram {_fmt(macd.histogram if macd else None)})",
        f"Trend: {indicators.trend.upper() if indicators.trend else NA}",
    ]


def build_report_prompt(snapshot: MarketSnapshot, indicators: IndicatorSet) -> str:
    """Render the narrative request. Pure and deterministic."""
    series = snapshot.price_history
    breadth = snapshot.breadth
    symbol = series.data.symbol or "benchmark"

    sections: list[tuple[str, SourceResult, list[str]]] = [
        ("MARKET INDICES", snapshot.indices, _quote_lines(snapshot.indices.data)),
        ("TOP MOVERS", snapshot.movers, _movers_lines(snapshot.movers.data)),
        ("GLOBAL MARKETS", snapshot.global_indices, _quote_lines(snapshot.global_indices.data)),
        ("CRYPTO", snapshot.crypto, _quote_lines(snapshot.crypto.data)),
        ("FOREX", snapshot.forex, _quote_lines(snapshot.forex.data, ".4f")),
        ("COMMODITIES", snapshot.commodities, _quote_lines(snapshot.commodities.data)),
        (
            "ECONOMIC INDICATORS",
            snapshot.economic_events,
            _economic_lines(snapshot.economic_events.data),
        ),
        ("NEWS SENTIMENT", snapshot.news, _news_lines(snapshot.news.data)),
        (
            "MARKET BREADTH",
            breadth,
            _breadth_lines(breadth.data, breadth.status != SourceStatus.FAILED),
        ),
        (
            f"TECHNICAL INDICATORS ({symbol})",
            series,
            _indicator_lines(indicators, series.data),
        ),
    ]

    parts = [SYSTEM_INTRO, f"Data as of: {snapshot.fetched_at.isoformat()}"]
    for title, result, lines in sections:
        parts.append("")
        parts.append(_header(title, result))
        parts.extend(lines)

    parts.extend(["", "---", "", RESPONSE_SCHEMA])
    return "\n".join(parts)
