"""Per-source fetch results and the snapshot they are merged into."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from core.models.market import MarketBreadth, MoversBoard, PriceSeries

T = TypeVar("T")


class SourceStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    FAILED = "failed"


class SourceResult(BaseModel, Generic[T]):
    """Outcome of one fetch attempt. Immutable once produced."""

    model_config = ConfigDict(frozen=True)

    data: T
    status: SourceStatus = SourceStatus.OK
    error: str | None = None

    @classmethod
    def ok(cls, data: Any) -> SourceResult:
        return cls(data=data, status=SourceStatus.OK)

    @classmethod
    def degraded(cls, data: Any, error: str) -> SourceResult:
        """Real data, but incomplete (e.g. some symbols could not be fetched)."""
        return cls(data=data, status=SourceStatus.DEGRADED, error=error)

    @classmethod
    def failed(cls, default: Any, error: str) -> SourceResult:
        return cls(data=default, status=SourceStatus.FAILED, error=error)

    @property
    def is_ok(self) -> bool:
        return self.status == SourceStatus.OK


# Fixed slot order. Snapshot assembly, prompt sections and data-quality flags
# all follow it.
SOURCE_SLOTS: tuple[str, ...] = (
    "indices",
    "movers",
    "global_indices",
    "crypto",
    "forex",
    "commodities",
    "economic_events",
    "news",
    "breadth",
    "price_history",
)


def slot_default(slot: str) -> Any:
    """The documented placeholder substituted when a slot's fetch fails."""
    if slot == "movers":
        return MoversBoard()
    if slot == "breadth":
        return MarketBreadth()
    if slot == "price_history":
        return PriceSeries()
    if slot in SOURCE_SLOTS:
        return []
    raise KeyError(f"Unknown source slot: {slot}")


def _failed_default(slot: str):
    return lambda: SourceResult.failed(slot_default(slot), "source not configured")


class MarketSnapshot(BaseModel):
    """All source results for one report request.

    Every slot is always populated, either with real data or with its
    documented default. Slot data types: list[Quote] for indices,
    global_indices, crypto, forex and commodities; MoversBoard;
    list[EconomicIndicator]; list[NewsItem]; MarketBreadth; PriceSeries.
    """

    model_config = ConfigDict(frozen=True)

    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    indices: SourceResult = Field(default_factory=_failed_default("indices"))
    movers: SourceResult = Field(default_factory=_failed_default("movers"))
    global_indices: SourceResult = Field(
        default_factory=_failed_default("global_indices")
    )
    crypto: SourceResult = Field(default_factory=_failed_default("crypto"))
    forex: SourceResult = Field(default_factory=_failed_default("forex"))
    commodities: SourceResult = Field(
        default_factory=_failed_default("commodities")
    )
    economic_events: SourceResult = Field(
        default_factory=_failed_default("economic_events")
    )
    news: SourceResult = Field(default_factory=_failed_default("news"))
    breadth: SourceResult = Field(default_factory=_failed_default("breadth"))
    price_history: SourceResult = Field(
        default_factory=_failed_default("price_history")
    )

    def slot(self, name: str) -> SourceResult:
        if name not in SOURCE_SLOTS:
            raise KeyError(f"Unknown source slot: {name}")
        return getattr(self, name)

    def statuses(self) -> dict[str, SourceStatus]:
        return {name: self.slot(name).status for name in SOURCE_SLOTS}
