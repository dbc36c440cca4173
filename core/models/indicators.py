"""Technical indicator results derived from a price series."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

Trend = Literal["bullish", "bearish", "neutral"]


class MACDResult(BaseModel):
    value: float
    signal: float | None = None
    histogram: float | None = None


class IndicatorSet(BaseModel):
    """Indicators for one series. A field is None when the series is too
    short for its window."""

    rsi: float | None = None
    sma20: float | None = None
    sma50: float | None = None
    ema12: float | None = None
    ema26: float | None = None
    macd: MACDResult | None = None
    trend: Trend | None = None
