"""
Tests for prompt synthesis from a snapshot plus indicators.
"""

from datetime import datetime, timezone

from core.models.market import (
    EconomicIndicator,
    MarketBreadth,
    MoversBoard,
    NewsItem,
    PriceSeries,
    Quote,
)
from core.models.sources import MarketSnapshot, SourceResult
from engine.indicators import compute_indicators
from engine.prompt import NA, build_report_prompt

from conftest import rising_closes

SECTION_ORDER = [
    "## MARKET INDICES",
    "## TOP MOVERS",
    "## GLOBAL MARKETS",
    "## CRYPTO",
    "## FOREX",
    "## COMMODITIES",
    "## ECONOMIC INDICATORS",
    "## NEWS SENTIMENT",
    "## MARKET BREADTH",
    "## TECHNICAL INDICATORS",
]

FETCHED_AT = datetime(2024, 3, 1, 14, 30, tzinfo=timezone.utc)


def _full_snapshot() -> MarketSnapshot:
    return MarketSnapshot(
        fetched_at=FETCHED_AT,
        indices=SourceResult.ok([
            Quote(symbol="^GSPC", name="S&P 500", price=5100.25, change_percent=1.23),
        ]),
        movers=SourceResult.ok(MoversBoard(
            gainers=[Quote(symbol="NVDA", change_percent=5.5)],
            losers=[Quote(symbol="INTC", change_percent=-3.1)],
        )),
        global_indices=SourceResult.degraded(
            [Quote(symbol="^FTSE", name="FTSE 100", price=7700.0, change_percent=-0.4)],
            "missing ^N225",
        ),
        crypto=SourceResult.ok([Quote(symbol="BTC-USD", name="Bitcoin", price=62000.0)]),
        forex=SourceResult.ok([Quote(symbol="EURUSD=X", name="EUR/USD", price=1.08461)]),
        commodities=SourceResult.ok([Quote(symbol="GC=F", name="Gold", price=2050.1)]),
        economic_events=SourceResult.ok([
            EconomicIndicator(series_id="UNRATE", name="Unemployment Rate", value=3.9,
                              previous_value=3.7, change=0.2, unit="%", date="2024-02-01"),
        ]),
        news=SourceResult.ok([
            NewsItem(headline="Stocks rally to record high", sentiment="bullish"),
            NewsItem(headline="Fed signals rate cut", sentiment="neutral", category="Macro"),
        ]),
        breadth=SourceResult.ok(MarketBreadth(advancing=30, declining=10, unchanged=5,
                                              new_highs=8, new_lows=1,
                                              above_ma200_percent=71.1, total=45)),
        price_history=SourceResult.ok(PriceSeries(symbol="^GSPC", closes=rising_closes(60))),
    )


class TestBuildReportPrompt:

    def test_sections_in_fixed_order(self):
        snapshot = _full_snapshot()
        prompt = build_report_prompt(snapshot, compute_indicators(snapshot.price_history.data))
        positions = [prompt.index(header) for header in SECTION_ORDER]
        assert positions == sorted(positions)

    def test_renders_values(self):
        snapshot = _full_snapshot()
        prompt = build_report_prompt(snapshot, compute_indicators(snapshot.price_history.data))
        assert "S&P 500: 5,100.25 (+1.23%)" in prompt
        assert "EUR/USD: 1.0846" in prompt
        assert "Gainers: NVDA +5.50%" in prompt
        assert "Unemployment Rate: 3.90%" in prompt
        assert "[BULLISH] [Market] Stocks rally to record high" in prompt
        assert "Advancing: 30" in prompt
        assert "Advance/decline ratio: 3.00" in prompt
        assert "## TECHNICAL INDICATORS (^GSPC)" in prompt
        assert "Trend: BULLISH" in prompt
        assert "RSI (14): 100.0" in prompt
        assert "Data as of: 2024-03-01T14:30:00+00:00" in prompt

    def test_partial_data_is_flagged(self):
        snapshot = _full_snapshot()
        prompt = build_report_prompt(snapshot, compute_indicators(snapshot.price_history.data))
        assert "## GLOBAL MARKETS [PARTIAL DATA: missing ^N225]" in prompt

    def test_empty_snapshot_renders_every_section(self):
        snapshot = MarketSnapshot(fetched_at=FETCHED_AT)
        prompt = build_report_prompt(snapshot, compute_indicators([]))
        for header in SECTION_ORDER:
            assert header in prompt
        assert prompt.count("[DATA UNAVAILABLE: source not configured]") == len(SECTION_ORDER)
        assert f"Advancing: {NA}" in prompt
        assert f"SMA 20: {NA}" in prompt
        assert f"MACD: {NA}" in prompt
        assert f"RSI (14): {NA}" in prompt
        assert "Total articles: 0" in prompt

    def test_rsi_unavailable_below_fifteen_closes(self):
        snapshot = MarketSnapshot(
            fetched_at=FETCHED_AT,
            price_history=SourceResult.ok(PriceSeries(symbol="^GSPC", closes=rising_closes(14))),
        )
        prompt = build_report_prompt(snapshot, compute_indicators(snapshot.price_history.data))
        assert f"RSI (14): {NA}" in prompt
        assert "Last close: 113.00" in prompt

    def test_ends_with_response_schema(self):
        prompt = build_report_prompt(MarketSnapshot(fetched_at=FETCHED_AT), compute_indicators([]))
        assert '"marketMood"' in prompt
        assert prompt.index("---") > prompt.index("## TECHNICAL INDICATORS")

    def test_deterministic(self):
        snapshot = _full_snapshot()
        indicators = compute_indicators(snapshot.price_history.data)
        assert build_report_prompt(snapshot, indicators) == build_report_prompt(snapshot, indicators)
