"""FRED economic indicators -- latest release per macro series.

Uses the St. Louis Fed observations endpoint via httpx. CPI is reported as
a year-over-year inflation rate; every other series as latest value with
the change from the previous observation.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

import httpx

from core.errors import ConfigurationMissing, SourceUnavailable
from core.models.market import EconomicIndicator
from core.models.sources import SourceResult

logger = logging.getLogger(__name__)

CPI_SERIES = "CPIAUCSL"

# Series reported as an index level rather than a rate.
_INDEX_UNITS = {"UMCSENT": "Index"}

_MISSING = {".", "", "ND"}


def parse_value(raw: str | None) -> float | None:
    """FRED encodes missing observations as '.'."""
    if raw is None or raw in _MISSING:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def year_over_year(observations: list[dict]) -> tuple[float | None, float | None]:
    """(YoY % change, year-ago value) from oldest-first monthly observations."""
    if len(observations) < 13:
        return None, None
    current = parse_value(observations[-1].get("value"))
    year_ago = parse_value(observations[-13].get("value"))
    if current is None or year_ago is None or year_ago == 0:
        return None, year_ago
    return round((current - year_ago) / year_ago * 100, 2), year_ago


def build_indicator(series_id: str, name: str, observations: list[dict]) -> EconomicIndicator:
    """Turn oldest-first observations into an EconomicIndicator."""
    date = observations[-1].get("date", "") if observations else ""

    if series_id == CPI_SERIES:
        rate, year_ago = year_over_year(observations)
        return EconomicIndicator(
            series_id=series_id,
            name=name,
            value=rate,
            previous_value=year_ago,
            unit="%",
            date=date,
        )

    latest = parse_value(observations[-1].get("value")) if observations else None
    previous = parse_value(observations[-2].get("value")) if len(observations) >= 2 else None
    change = None
    if latest is not None and previous is not None:
        change = round(latest - previous, 2)

    return EconomicIndicator(
        series_id=series_id,
        name=name,
        value=latest,
        previous_value=previous,
        change=change,
        unit=_INDEX_UNITS.get(series_id, "%"),
        date=date,
    )


class FredSource:
    """Fetches every configured series concurrently.

    Without an API key the source raises ConfigurationMissing, which the
    aggregator records as a failed slot.
    """

    def __init__(
        self,
        api_key: str,
        series: Mapping[str, str],
        base_url: str = "https://api.stlouisfed.org/fred/series/observations",
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._api_key = api_key
        self._series = dict(series)
        self._base_url = base_url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def name(self) -> str:
        return "fred"

    async def fetch_series(self, series_id: str) -> EconomicIndicator:
        limit = 15 if series_id == CPI_SERIES else 5
        response = await self._client.get(
            self._base_url,
            params={
                "series_id": series_id,
                "api_key": self._api_key,
                "file_type": "json",
                "sort_order": "desc",
                "limit": str(limit),
            },
        )
        if response.status_code != 200:
            raise SourceUnavailable(series_id, f"HTTP {response.status_code}")

        # Requested newest first; indicators are computed oldest first.
        observations = list(reversed(response.json().get("observations", [])))
        return build_indicator(series_id, self._series.get(series_id, series_id), observations)

    async def fetch(self) -> SourceResult:
        if not self._api_key:
            raise ConfigurationMissing("economic_data.api_key")

        series_ids = list(self._series)
        results = await asyncio.gather(
            *(self.fetch_series(s) for s in series_ids),
            return_exceptions=True,
        )

        indicators: list[EconomicIndicator] = []
        failed: list[str] = []
        for series_id, result in zip(series_ids, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning("FRED series %s failed: %s", series_id, result)
                failed.append(series_id)
                continue
            indicators.append(result)

        if not indicators:
            raise SourceUnavailable(self.name, "no series could be fetched")
        if failed:
            return SourceResult.degraded(indicators, f"missing {', '.join(failed)}")
        return SourceResult.ok(indicators)

    async def close(self) -> None:
        await self._client.aclose()
