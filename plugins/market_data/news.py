"""Market headlines from RSS feeds, tagged with keyword sentiment."""

from __future__ import annotations

import asyncio
import logging
from xml.etree import ElementTree

import httpx

from core.errors import SourceUnavailable
from core.models.market import NewsItem
from core.models.sources import SourceResult
from engine.sentiment import headline_category, headline_sentiment

logger = logging.getLogger(__name__)


def _parse_rss_items(xml_text: str) -> list[dict]:
    """Parse RSS XML into a normalized list of headline dicts."""
    try:
        root = ElementTree.fromstring(xml_text)
    except ElementTree.ParseError:
        return []

    channel_title = (root.findtext("./channel/title") or "").strip()
    out: list[dict] = []
    for item in root.findall(".//item"):
        title = (item.findtext("title") or "").strip()
        if not title:
            continue
        out.append({
            "title": title,
            "link": (item.findtext("link") or "").strip(),
            "published": (item.findtext("pubDate") or "").strip(),
            "source": (item.findtext("source") or channel_title).strip(),
        })
    return out


def dedupe_headlines(items: list[dict], limit: int) -> list[dict]:
    """Deduplicate by title while keeping arrival order."""
    seen: set[str] = set()
    deduped: list[dict] = []
    for item in items:
        key = item["title"].strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        deduped.append(item)
        if len(deduped) >= limit:
            break
    return deduped


def to_news_item(item: dict) -> NewsItem:
    title = item["title"]
    return NewsItem(
        headline=title,
        source=item.get("source") or "",
        link=item.get("link", ""),
        published=item.get("published", ""),
        sentiment=headline_sentiment(title),
        category=headline_category(title),
    )


class RSSNewsSource:
    """Reads every configured feed; one dead feed only degrades the slot."""

    def __init__(
        self,
        feeds: list[str],
        limit: int = 20,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._feeds = list(feeds)
        self._limit = limit
        self._client = client or httpx.AsyncClient(
            timeout=timeout, headers={"User-Agent": "MarketBrief/0.1"}
        )

    @property
    def name(self) -> str:
        return "rss_news"

    async def _fetch_feed(self, url: str) -> list[dict]:
        response = await self._client.get(url)
        if response.status_code != 200:
            raise SourceUnavailable(url, f"HTTP {response.status_code}")
        return _parse_rss_items(response.text)

    async def fetch(self) -> SourceResult:
        if not self._feeds:
            raise SourceUnavailable(self.name, "no feeds configured")

        results = await asyncio.gather(
            *(self._fetch_feed(url) for url in self._feeds),
            return_exceptions=True,
        )

        items: list[dict] = []
        failed = 0
        for url, result in zip(self._feeds, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning("Failed to fetch RSS feed %s: %s", url, result)
                failed += 1
                continue
            items.extend(result)

        headlines = [to_news_item(i) for i in dedupe_headlines(items, self._limit)]
        if not headlines:
            raise SourceUnavailable(self.name, "no headlines in any feed")
        if failed:
            return SourceResult.degraded(headlines, f"{failed} of {len(self._feeds)} feeds failed")
        return SourceResult.ok(headlines)

    async def close(self) -> None:
        await self._client.aclose()
