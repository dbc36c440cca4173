"""Market data models -- quotes, movers, breadth, macro releases, headlines."""

from __future__ import annotations

import math
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class Quote(BaseModel):
    """Latest price for one instrument (index, coin, pair, future)."""

    symbol: str
    name: str = ""
    price: float = 0.0
    change: float = 0.0
    change_percent: float = 0.0
    previous_close: float | None = None
    volume: float | None = None
    fifty_two_week_high: float | None = None
    fifty_two_week_low: float | None = None
    two_hundred_day_average: float | None = None


class MoversBoard(BaseModel):
    """Top gainers, losers and most-active names from the tracked universe."""

    gainers: list[Quote] = Field(default_factory=list)
    losers: list[Quote] = Field(default_factory=list)
    most_active: list[Quote] = Field(default_factory=list)


class MarketBreadth(BaseModel):
    """Advance/decline style statistics over a basket of large caps.

    The zeroed default is what a failed breadth fetch degrades to.
    """

    advancing: int = 0
    declining: int = 0
    unchanged: int = 0
    new_highs: int = 0
    new_lows: int = 0
    above_ma200_percent: float = 0.0
    total: int = 0

    @property
    def advance_decline_ratio(self) -> float | None:
        if self.declining == 0:
            return float(self.advancing) if self.advancing else None
        return self.advancing / self.declining


class EconomicIndicator(BaseModel):
    """Latest release of one macro series (FRED)."""

    series_id: str
    name: str
    value: float | None = None
    previous_value: float | None = None
    change: float | None = None
    unit: str = ""
    date: str = ""


class NewsItem(BaseModel):
    """A headline tagged with keyword sentiment and a coarse category."""

    headline: str
    source: str = ""
    link: str = ""
    published: str = ""
    sentiment: Literal["bullish", "bearish", "neutral"] = "neutral"
    category: Literal["Macro", "Earnings", "Market"] = "Market"


class PriceSeries(BaseModel):
    """Daily closing prices, oldest first.

    Null and non-finite values coming from the provider are dropped so the
    indicator engine only ever sees finite floats.
    """

    symbol: str = ""
    closes: list[float] = Field(default_factory=list)

    @field_validator("closes", mode="before")
    @classmethod
    def _drop_missing(cls, value: object) -> list:
        if value is None:
            return []
        cleaned = []
        for item in value:
            if item is None:
                continue
            number = float(item)
            if math.isfinite(number):
                cleaned.append(number)
        return cleaned

    @property
    def last(self) -> float | None:
        return self.closes[-1] if self.closes else None

    def __len__(self) -> int:
        return len(self.closes)
