"""Report models -- the validated narrative and the assembled market report."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MarketMood = Literal["bullish", "bearish", "neutral", "mixed"]


class _CamelModel(BaseModel):
    """The model replies in camelCase; Python code uses snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SectorOutlook(_CamelModel):
    sector: str
    outlook: Literal["bullish", "bearish", "neutral"] = "neutral"
    reason: str = ""


class Outlook(_CamelModel):
    short_term: str = ""
    medium_term: str = ""


class NarrativeReport(_CamelModel):
    """Schema the language model is asked to fill in.

    Only mood and summary are required; list and text sections default to
    empty so a terse but well-formed reply still validates.
    """

    market_mood: MarketMood
    summary: str
    sentiment_score: float | None = Field(default=None, ge=0, le=100)
    risk_score: float | None = Field(default=None, ge=0, le=100)
    key_highlights: list[str] = Field(default_factory=list)
    sector_outlook: list[SectorOutlook] = Field(default_factory=list)
    risk_factors: list[str] = Field(default_factory=list)
    opportunities: list[str] = Field(default_factory=list)
    trading_strategy: str = ""
    outlook: Outlook = Field(default_factory=Outlook)


class MarketReport(BaseModel):
    """Terminal artifact of one report request. Not persisted."""

    narrative: NarrativeReport
    data_quality: dict[str, bool]
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    model: str = ""
    raw_data: dict[str, Any] = Field(default_factory=dict)
    cached: bool = False

    def to_response(self) -> dict[str, Any]:
        """Render the public JSON payload (camelCase keys)."""
        return {
            "success": True,
            "report": self.narrative.model_dump(mode="json", by_alias=True),
            "generatedAt": self.generated_at.isoformat(),
            "model": self.model,
            "dataQuality": dict(self.data_quality),
            "rawData": self.raw_data,
            "cached": self.cached,
        }
