"""
Tests for the aggregator: concurrent fetch, per-source isolation, fixed order.
"""

import asyncio
import itertools

import pytest

from core.errors import ConfigurationMissing, SourceUnavailable
from core.models.market import MarketBreadth, MoversBoard, PriceSeries, Quote
from core.models.sources import SOURCE_SLOTS, SourceResult, SourceStatus, slot_default
from engine.aggregator import Aggregator

from conftest import FakeFetcher


def _ok_result(slot: str) -> SourceResult:
    if slot == "movers":
        return SourceResult.ok(MoversBoard(gainers=[Quote(symbol="NVDA", change_percent=4.0)]))
    if slot == "breadth":
        return SourceResult.ok(MarketBreadth(advancing=30, declining=15, total=45))
    if slot == "price_history":
        return SourceResult.ok(PriceSeries(symbol="^GSPC", closes=[1.0, 2.0]))
    return SourceResult.ok([Quote(symbol=slot.upper(), price=1.0)])


def _sources(failing: set[str]) -> dict:
    return {
        slot: FakeFetcher(slot, exc=SourceUnavailable(slot, "boom"))
        if slot in failing
        else FakeFetcher(slot, _ok_result(slot))
        for slot in SOURCE_SLOTS
    }


class TestAggregatorCompleteness:

    @pytest.mark.asyncio
    async def test_all_sources_ok(self):
        snapshot = await Aggregator(_sources(set())).collect()
        assert all(status == SourceStatus.OK for status in snapshot.statuses().values())

    @pytest.mark.asyncio
    async def test_every_failure_subset_yields_complete_snapshot(self):
        # Pairs and singletons keep the grid small but cover every slot.
        subsets = [set(c) for r in (1, 2) for c in itertools.combinations(SOURCE_SLOTS, r)]
        subsets.append(set(SOURCE_SLOTS))
        for failing in subsets:
            snapshot = await Aggregator(_sources(failing)).collect()
            for slot in SOURCE_SLOTS:
                result = snapshot.slot(slot)
                if slot in failing:
                    assert result.status == SourceStatus.FAILED
                    assert result.data == slot_default(slot)
                    assert "boom" in result.error
                else:
                    assert result.is_ok

    @pytest.mark.asyncio
    async def test_unconfigured_slots_are_failed_defaults(self):
        snapshot = await Aggregator({}).collect()
        for slot in SOURCE_SLOTS:
            result = snapshot.slot(slot)
            assert result.status == SourceStatus.FAILED
            assert result.error == "source not configured"
            assert result.data == slot_default(slot)

    @pytest.mark.asyncio
    async def test_configuration_missing_only_fails_its_slot(self):
        sources = _sources(set())
        sources["economic_events"] = FakeFetcher(
            "fred", exc=ConfigurationMissing("economic_data.api_key")
        )
        snapshot = await Aggregator(sources).collect()
        assert snapshot.economic_events.status == SourceStatus.FAILED
        assert "economic_data.api_key" in snapshot.economic_events.error
        assert snapshot.indices.is_ok

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_absorbed(self):
        sources = _sources(set())
        sources["crypto"] = FakeFetcher("crypto", exc=RuntimeError("kaboom"))
        snapshot = await Aggregator(sources).collect()
        assert snapshot.crypto.status == SourceStatus.FAILED
        assert snapshot.crypto.error == "kaboom"

    @pytest.mark.asyncio
    async def test_invalid_fetcher_result_is_failed(self):
        sources = _sources(set())
        sources["forex"] = FakeFetcher("forex", result={"not": "a result"})
        snapshot = await Aggregator(sources).collect()
        assert snapshot.forex.status == SourceStatus.FAILED
        assert snapshot.forex.data == []

    @pytest.mark.asyncio
    async def test_degraded_result_is_kept(self):
        sources = _sources(set())
        sources["indices"] = FakeFetcher(
            "indices", SourceResult.degraded([Quote(symbol="^GSPC")], "missing ^DJI")
        )
        snapshot = await Aggregator(sources).collect()
        assert snapshot.indices.status == SourceStatus.DEGRADED
        assert snapshot.indices.data[0].symbol == "^GSPC"
        assert not snapshot.indices.is_ok


class TestAggregatorTiming:

    @pytest.mark.asyncio
    async def test_slow_source_times_out_alone(self):
        sources = _sources(set())
        sources["news"] = FakeFetcher("news", SourceResult.ok([]), delay=5.0)
        snapshot = await Aggregator(sources, timeout=0.05).collect()
        assert snapshot.news.status == SourceStatus.FAILED
        assert "timed out" in snapshot.news.error
        assert snapshot.indices.is_ok

    @pytest.mark.asyncio
    async def test_sources_run_concurrently(self):
        sources = {
            slot: FakeFetcher(slot, _ok_result(slot), delay=0.1) for slot in SOURCE_SLOTS
        }
        loop = asyncio.get_running_loop()
        started = loop.time()
        await Aggregator(sources, timeout=2.0).collect()
        # Sequential execution would take about a second.
        assert loop.time() - started < 0.6

    @pytest.mark.asyncio
    async def test_each_fetcher_called_once(self):
        sources = _sources({"breadth"})
        await Aggregator(sources).collect()
        assert all(f.calls == 1 for f in sources.values())


class TestAggregatorConfig:

    def test_rejects_unknown_slot(self):
        with pytest.raises(ValueError):
            Aggregator({"weather": FakeFetcher("weather")})

    def test_slots_in_fixed_order(self):
        sources = {
            "price_history": FakeFetcher("h"),
            "indices": FakeFetcher("i"),
            "news": FakeFetcher("n"),
        }
        assert Aggregator(sources).slots == ["indices", "news", "price_history"]
