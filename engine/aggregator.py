"""Aggregator -- concurrent fan-out to every source fetcher, fan-in to a snapshot.

Each slot's fetch runs as its own task under its own timeout. A task never
raises: any error becomes a failed SourceResult holding the slot default.
The snapshot is assembled in fixed slot order once every task has settled.
Cancellation from the caller is not caught and propagates normally.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from datetime import datetime, timezone

from core.models.sources import (
    SOURCE_SLOTS,
    MarketSnapshot,
    SourceResult,
    slot_default,
)
from core.protocols import SourceFetcher

logger = logging.getLogger(__name__)


class Aggregator:
    """Builds a fully-populated MarketSnapshot from static source definitions."""

    def __init__(
        self,
        sources: Mapping[str, SourceFetcher],
        timeout: float = 10.0,
    ) -> None:
        unknown = [slot for slot in sources if slot not in SOURCE_SLOTS]
        if unknown:
            raise ValueError(f"Unknown source slots: {unknown}")
        self._sources = dict(sources)
        self._timeout = timeout

    @property
    def slots(self) -> list[str]:
        return [slot for slot in SOURCE_SLOTS if slot in self._sources]

    async def collect(self) -> MarketSnapshot:
        """Fetch every slot concurrently and return the merged snapshot."""
        started = datetime.now(timezone.utc)
        results = await asyncio.gather(
            *(self._fetch_slot(slot) for slot in SOURCE_SLOTS)
        )
        by_slot = dict(zip(SOURCE_SLOTS, results))

        failed = [slot for slot, result in by_slot.items() if not result.is_ok]
        if failed:
            logger.info("Snapshot assembled with %d degraded slot(s): %s", len(failed), failed)
        else:
            logger.info("Snapshot assembled, all %d slots ok", len(by_slot))

        return MarketSnapshot(fetched_at=started, **by_slot)

    async def _fetch_slot(self, slot: str) -> SourceResult:
        fetcher = self._sources.get(slot)
        if fetcher is None:
            return SourceResult.failed(slot_default(slot), "source not configured")

        try:
            result = await asyncio.wait_for(fetcher.fetch(), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("Source %s (%s) timed out after %.1fs", slot, fetcher.name, self._timeout)
            return SourceResult.failed(
                slot_default(slot), f"timed out after {self._timeout:.1f}s"
            )
        except Exception as e:
            logger.warning("Source %s (%s) failed: %s", slot, fetcher.name, e)
            return SourceResult.failed(slot_default(slot), str(e) or type(e).__name__)

        if not isinstance(result, SourceResult) or result.data is None:
            logger.error(
                "Source %s (%s) returned an invalid result: %r",
                slot, fetcher.name, result,
            )
            return SourceResult.failed(slot_default(slot), "invalid fetcher result")
        return result
