"""Pydantic data models shared across all components."""

from core.models.market import (
    EconomicIndicator,
    MarketBreadth,
    MoversBoard,
    NewsItem,
    PriceSeries,
    Quote,
)
from core.models.sources import (
    SOURCE_SLOTS,
    MarketSnapshot,
    SourceResult,
    SourceStatus,
    slot_default,
)
from core.models.indicators import IndicatorSet, MACDResult, Trend
from core.models.report import MarketReport, NarrativeReport, SectorOutlook

__all__ = [
    "EconomicIndicator",
    "MarketBreadth",
    "MoversBoard",
    "NewsItem",
    "PriceSeries",
    "Quote",
    "SOURCE_SLOTS",
    "MarketSnapshot",
    "SourceResult",
    "SourceStatus",
    "slot_default",
    "IndicatorSet",
    "MACDResult",
    "Trend",
    "MarketReport",
    "NarrativeReport",
    "SectorOutlook",
]
