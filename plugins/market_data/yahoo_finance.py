"""Yahoo Finance market data -- fetches via httpx (no yfinance dependency).

Supports stocks, ETFs, indices, forex, crypto and futures (Yahoo-style tickers).
Example tickers: AAPL, ^GSPC, BTC-USD, EURUSD=X, GC=F

The client talks to the public chart API. The source classes below turn it
into snapshot-slot fetchers: quote lists, movers, breadth and the benchmark
price history.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

import httpx

from core.errors import SourceUnavailable
from core.models.market import MarketBreadth, MoversBoard, PriceSeries, Quote
from core.models.sources import SourceResult
from engine.indicators import sma

logger = logging.getLogger(__name__)

# Yahoo Finance chart API endpoint
_CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{ticker}"

_VALID_RANGES = {"1d", "5d", "1mo", "3mo", "6mo", "1y", "2y", "5y", "max"}

NEAR_EXTREME_BAND = 0.05


class YahooFinanceClient:
    """Thin async wrapper over the chart API."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": "Mozilla/5.0 (compatible; MarketBrief/0.1)"},
        )

    async def chart(self, ticker: str, range_: str = "5d", interval: str = "1d") -> dict:
        """Return the first chart result for a ticker, or raise SourceUnavailable."""
        if range_ not in _VALID_RANGES:
            raise ValueError(f"Unsupported range {range_!r}")

        url = _CHART_URL.format(ticker=ticker)
        response = await self._client.get(
            url,
            params={"range": range_, "interval": interval, "includePrePost": "false"},
        )
        if response.status_code != 200:
            raise SourceUnavailable(ticker, f"HTTP {response.status_code}")

        chart = response.json().get("chart", {})
        result = chart.get("result")
        if not result:
            raise SourceUnavailable(ticker, str(chart.get("error") or "empty chart"))
        return result[0]

    async def quote(self, ticker: str, name: str = "", range_: str = "5d") -> tuple[Quote, list[float]]:
        """Latest quote plus the daily closes it was derived from."""
        result = await self.chart(ticker, range_=range_)
        return parse_chart_quote(ticker, name, result)

    async def history(self, ticker: str, range_: str = "6mo") -> PriceSeries:
        result = await self.chart(ticker, range_=range_)
        return PriceSeries(symbol=ticker, closes=_closes(result))

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()


def _closes(result: dict) -> list:
    indicators = result.get("indicators", {})
    quote = (indicators.get("quote") or [{}])[0]
    return quote.get("close") or []


def parse_chart_quote(ticker: str, name: str, result: dict) -> tuple[Quote, list[float]]:
    """Build a Quote from a chart result.

    change is derived from regularMarketPrice and the previous close
    (meta previousClose, else the prior daily bar, else chartPreviousClose).
    """
    meta = result.get("meta", {})
    closes = PriceSeries(symbol=ticker, closes=_closes(result)).closes

    price = meta.get("regularMarketPrice")
    if price is None and closes:
        price = closes[-1]
    if price is None:
        raise SourceUnavailable(ticker, "no price in chart result")

    previous = meta.get("previousClose")
    if previous is None and len(closes) >= 2:
        previous = closes[-2]
    if previous is None:
        previous = meta.get("chartPreviousClose")

    change = price - previous if previous else 0.0
    change_percent = change / previous * 100 if previous else 0.0

    quote = Quote(
        symbol=ticker,
        name=name or meta.get("shortName") or meta.get("longName") or ticker,
        price=float(price),
        change=float(change),
        change_percent=float(change_percent),
        previous_close=previous,
        volume=meta.get("regularMarketVolume"),
        fifty_two_week_high=meta.get("fiftyTwoWeekHigh") or (max(closes) if closes else None),
        fifty_two_week_low=meta.get("fiftyTwoWeekLow") or (min(closes) if closes else None),
        two_hundred_day_average=sma(closes, 200),
    )
    return quote, closes


async def _fetch_quotes(
    client: YahooFinanceClient,
    symbols: Mapping[str, str],
    range_: str = "5d",
) -> tuple[list[Quote], list[str]]:
    """Fetch many quotes concurrently. Returns (quotes in input order, failed tickers)."""
    tickers = list(symbols)
    results = await asyncio.gather(
        *(client.quote(t, symbols[t], range_=range_) for t in tickers),
        return_exceptions=True,
    )

    quotes: list[Quote] = []
    failed: list[str] = []
    for ticker, result in zip(tickers, results):
        if isinstance(result, BaseException):
            if isinstance(result, asyncio.CancelledError):
                raise result
            logger.debug("Quote for %s failed: %s", ticker, result)
            failed.append(ticker)
            continue
        quotes.append(result[0])
    return quotes, failed


def _partial_result(source: str, data, fetched: int, failed: list[str]) -> SourceResult:
    if fetched == 0:
        raise SourceUnavailable(source, f"all {len(failed)} symbols failed")
    if failed:
        return SourceResult.degraded(data, f"missing {', '.join(failed)}")
    return SourceResult.ok(data)


class QuoteListSource:
    """A fixed basket of instruments (indices, crypto, forex, commodities)."""

    def __init__(self, name: str, client: YahooFinanceClient, symbols: Mapping[str, str]) -> None:
        self._name = name
        self._client = client
        self._symbols = dict(symbols)

    @property
    def name(self) -> str:
        return self._name

    async def fetch(self) -> SourceResult:
        if not self._symbols:
            raise SourceUnavailable(self._name, "no symbols configured")
        quotes, failed = await _fetch_quotes(self._client, self._symbols)
        return _partial_result(self._name, quotes, len(quotes), failed)


class MoversSource:
    """Top gainers, losers and most active names from a stock universe."""

    def __init__(self, client: YahooFinanceClient, universe: list[str], limit: int = 5) -> None:
        self._client = client
        self._universe = list(universe)
        self._limit = limit

    @property
    def name(self) -> str:
        return "yahoo_movers"

    async def fetch(self) -> SourceResult:
        quotes, failed = await _fetch_quotes(self._client, {s: "" for s in self._universe})
        board = build_movers(quotes, self._limit)
        return _partial_result(self.name, board, len(quotes), failed)


def build_movers(quotes: list[Quote], limit: int = 5) -> MoversBoard:
    by_change = sorted(quotes, key=lambda q: q.change_percent, reverse=True)
    return MoversBoard(
        gainers=[q for q in by_change if q.change_percent > 0][:limit],
        losers=[q for q in reversed(by_change) if q.change_percent < 0][:limit],
        most_active=sorted(quotes, key=lambda q: q.volume or 0, reverse=True)[:limit],
    )


class BreadthSource:
    """Advance/decline statistics over a basket of large caps.

    Uses one year of daily closes per name so 52-week extremes and the
    200-day average are available from the chart API alone.
    """

    def __init__(self, client: YahooFinanceClient, universe: list[str]) -> None:
        self._client = client
        self._universe = list(universe)

    @property
    def name(self) -> str:
        return "yahoo_breadth"

    async def fetch(self) -> SourceResult:
        quotes, failed = await _fetch_quotes(
            self._client, {s: "" for s in self._universe}, range_="1y"
        )
        return _partial_result(self.name, compute_breadth(quotes), len(quotes), failed)


def compute_breadth(quotes: list[Quote]) -> MarketBreadth:
    near_highs = sum(
        1 for q in quotes
        if q.fifty_two_week_high and q.price >= q.fifty_two_week_high * (1 - NEAR_EXTREME_BAND)
    )
    near_lows = sum(
        1 for q in quotes
        if q.fifty_two_week_low and q.price <= q.fifty_two_week_low * (1 + NEAR_EXTREME_BAND)
    )
    with_ma = [q for q in quotes if q.two_hundred_day_average]
    above = sum(1 for q in with_ma if q.price > q.two_hundred_day_average)

    return MarketBreadth(
        advancing=sum(1 for q in quotes if q.change_percent > 0),
        declining=sum(1 for q in quotes if q.change_percent < 0),
        unchanged=sum(1 for q in quotes if q.change_percent == 0),
        new_highs=near_highs,
        new_lows=near_lows,
        above_ma200_percent=round(above / len(with_ma) * 100, 1) if with_ma else 0.0,
        total=len(quotes),
    )


class PriceHistorySource:
    """Daily closes of the benchmark that feeds the indicator engine."""

    def __init__(self, client: YahooFinanceClient, symbol: str = "^GSPC", range_: str = "6mo") -> None:
        self._client = client
        self._symbol = symbol
        self._range = range_

    @property
    def name(self) -> str:
        return "yahoo_price_history"

    async def fetch(self) -> SourceResult:
        series = await self._client.history(self._symbol, range_=self._range)
        if not series.closes:
            raise SourceUnavailable(self.name, f"no closes for {self._symbol}")
        return SourceResult.ok(series)
