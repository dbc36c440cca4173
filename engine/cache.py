"""In-process TTL cache for the last generated report.

Single-instance only. A multi-instance deployment would need a shared store.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable

from core.models.report import MarketReport


class ReportCache:
    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._report: MarketReport | None = None
        self._stored_at = 0.0

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    def get(self) -> MarketReport | None:
        if not self.enabled or self._report is None:
            return None
        if self._clock() - self._stored_at >= self._ttl:
            self._report = None
            return None
        return self._report

    def set(self, report: MarketReport) -> None:
        if not self.enabled:
            return
        self._report = report
        self._stored_at = self._clock()

    def remaining(self) -> int:
        """Seconds until the cached report expires (0 when empty)."""
        if self._report is None:
            return 0
        elapsed = self._clock() - self._stored_at
        return max(0, math.ceil(self._ttl - elapsed))

    def clear(self) -> None:
        self._report = None
