"""
Tests for the RSS headline source and keyword tagging.
"""

import httpx
import pytest

from core.errors import SourceUnavailable
from core.models.market import NewsItem
from core.models.sources import SourceStatus
from engine.sentiment import headline_category, headline_sentiment, sentiment_breakdown
from plugins.market_data.news import RSSNewsSource, _parse_rss_items, dedupe_headlines

FEED_A = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>Yahoo Finance</title>
<item><title>Stocks surge to record high</title><link>https://a/1</link>
<pubDate>Fri, 01 Mar 2024 14:00:00 GMT</pubDate></item>
<item><title>Fed holds rates steady</title><link>https://a/2</link></item>
<item><title></title></item>
</channel></rss>"""

FEED_B = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>MarketWatch</title>
<item><title>STOCKS SURGE TO RECORD HIGH</title><link>https://b/1</link></item>
<item><title>Chipmaker shares plunge after earnings miss</title><link>https://b/2</link>
<source url="https://reuters.com">Reuters</source></item>
</channel></rss>"""


def _source(feeds: dict, limit: int = 20) -> RSSNewsSource:
    def handler(request: httpx.Request) -> httpx.Response:
        body = feeds.get(str(request.url))
        if body is None:
            return httpx.Response(500)
        return httpx.Response(200, text=body)

    return RSSNewsSource(
        feeds=list(feeds),
        limit=limit,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestSentimentTagging:

    def test_bullish(self):
        assert headline_sentiment("Stocks surge to record high") == "bullish"

    def test_bearish(self):
        assert headline_sentiment("Shares plunge as outlook turns weak") == "bearish"

    def test_neutral_when_balanced(self):
        assert headline_sentiment("Company names new chairman") == "neutral"

    def test_categories(self):
        assert headline_category("Fed minutes show inflation worry") == "Macro"
        assert headline_category("Quarterly earnings top estimates") == "Earnings"
        assert headline_category("Apple unveils new iPhone") == "Market"

    def test_breakdown(self):
        items = [
            NewsItem(headline="a", sentiment="bullish"),
            NewsItem(headline="b", sentiment="neutral"),
        ]
        assert sentiment_breakdown(items) == {"bullish": 1, "bearish": 0, "neutral": 1}


class TestRssParsing:

    def test_parse_items(self):
        items = _parse_rss_items(FEED_A)
        assert [i["title"] for i in items] == ["Stocks surge to record high", "Fed holds rates steady"]
        assert items[0]["source"] == "Yahoo Finance"
        assert items[0]["published"] == "Fri, 01 Mar 2024 14:00:00 GMT"

    def test_item_source_overrides_channel(self):
        items = _parse_rss_items(FEED_B)
        assert items[1]["source"] == "Reuters"

    def test_malformed_xml(self):
        assert _parse_rss_items("<rss><channel>") == []

    def test_dedupe_case_insensitive(self):
        items = _parse_rss_items(FEED_A) + _parse_rss_items(FEED_B)
        titles = [i["title"] for i in dedupe_headlines(items, limit=10)]
        assert titles == [
            "Stocks surge to record high",
            "Fed holds rates steady",
            "Chipmaker shares plunge after earnings miss",
        ]

    def test_dedupe_limit(self):
        items = _parse_rss_items(FEED_A)
        assert len(dedupe_headlines(items, limit=1)) == 1


class TestRSSNewsSource:

    @pytest.mark.asyncio
    async def test_merges_feeds_and_tags(self):
        source = _source({"https://a.example/rss": FEED_A, "https://b.example/rss": FEED_B})
        result = await source.fetch()
        assert result.status == SourceStatus.OK
        first, second, third = result.data
        assert first.sentiment == "bullish"
        assert second.category == "Macro"
        assert third.sentiment == "bearish"
        assert third.category == "Earnings"
        assert third.source == "Reuters"

    @pytest.mark.asyncio
    async def test_dead_feed_degrades(self):
        feeds = {"https://a.example/rss": FEED_A, "https://b.example/rss": None}
        source = RSSNewsSource(
            feeds=list(feeds),
            client=httpx.AsyncClient(transport=httpx.MockTransport(
                lambda r: httpx.Response(200, text=FEED_A)
                if str(r.url) == "https://a.example/rss"
                else httpx.Response(503)
            )),
        )
        result = await source.fetch()
        assert result.status == SourceStatus.DEGRADED
        assert result.error == "1 of 2 feeds failed"
        assert len(result.data) == 2

    @pytest.mark.asyncio
    async def test_no_headlines_raises(self):
        source = _source({"https://a.example/rss": "<rss><channel></channel></rss>"})
        with pytest.raises(SourceUnavailable):
            await source.fetch()

    @pytest.mark.asyncio
    async def test_no_feeds_raises(self):
        with pytest.raises(SourceUnavailable):
            await RSSNewsSource(feeds=[], client=httpx.AsyncClient()).fetch()
