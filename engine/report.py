"""Report pipeline -- snapshot, indicators, prompt, narrative, parse, assemble.

Stages of one request:

    init -> fetching -> synthesizing -> awaiting_narrative -> parsing -> complete

`failed` is reachable only while waiting for the narrative (service error)
or while parsing it. Source failures never fail a request; they are
absorbed while fetching and show up as data-quality flags.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic.alias_generators import to_camel

from core.errors import NarrativeParseError, NarrativeServiceError
from core.models.indicators import IndicatorSet
from core.models.market import Quote
from core.models.report import MarketReport, NarrativeReport
from core.models.sources import SOURCE_SLOTS, MarketSnapshot
from core.protocols import LLMProvider
from engine.aggregator import Aggregator
from engine.cache import ReportCache
from engine.indicators import compute_indicators
from engine.parser import parse_narrative
from engine.prompt import build_report_prompt
from engine.sentiment import sentiment_breakdown

logger = logging.getLogger(__name__)


class ReportStage(str, Enum):
    INIT = "init"
    FETCHING = "fetching"
    SYNTHESIZING = "synthesizing"
    AWAITING_NARRATIVE = "awaiting_narrative"
    PARSING = "parsing"
    COMPLETE = "complete"
    FAILED = "failed"


_TRANSITIONS: dict[ReportStage, frozenset[ReportStage]] = {
    ReportStage.INIT: frozenset({ReportStage.FETCHING}),
    ReportStage.FETCHING: frozenset({ReportStage.SYNTHESIZING}),
    ReportStage.SYNTHESIZING: frozenset({ReportStage.AWAITING_NARRATIVE}),
    ReportStage.AWAITING_NARRATIVE: frozenset({ReportStage.PARSING, ReportStage.FAILED}),
    ReportStage.PARSING: frozenset({ReportStage.COMPLETE, ReportStage.FAILED}),
    ReportStage.COMPLETE: frozenset(),
    ReportStage.FAILED: frozenset(),
}


class ReportRun:
    """Tracks one request through the pipeline stages."""

    def __init__(self) -> None:
        self.id = f"rpt_{uuid4().hex[:12]}"
        self.stage = ReportStage.INIT
        self.history: list[ReportStage] = [ReportStage.INIT]

    def advance(self, stage: ReportStage) -> None:
        if stage not in _TRANSITIONS[self.stage]:
            raise RuntimeError(
                f"Illegal report transition {self.stage.value} -> {stage.value}"
            )
        logger.debug("Report %s: %s -> %s", self.id, self.stage.value, stage.value)
        self.stage = stage
        self.history.append(stage)


def index_mood(indices: list[Quote]) -> str | None:
    """Coarse mood from the average index change (None without indices)."""
    if not indices:
        return None
    avg = sum(q.change_percent for q in indices) / len(indices)
    if avg > 0.5:
        return "bullish"
    if avg > -0.5:
        return "mixed"
    return "bearish"


def assemble_report(
    snapshot: MarketSnapshot,
    indicators: IndicatorSet,
    narrative: NarrativeReport,
    model: str,
    generated_at: datetime | None = None,
) -> MarketReport:
    """Merge snapshot quality flags, indicators and the narrative."""
    data_quality = {slot: snapshot.slot(slot).is_ok for slot in SOURCE_SLOTS}

    series = snapshot.price_history.data
    breadth = snapshot.breadth.data
    raw_data: dict[str, Any] = {
        "benchmark": series.symbol,
        "lastClose": series.last,
        "indicators": indicators.model_dump(mode="json"),
        "breadth": {
            **{to_camel(key): value for key, value in breadth.model_dump(mode="json").items()},
            "advanceDeclineRatio": breadth.advance_decline_ratio,
        },
        "sentimentBreakdown": sentiment_breakdown(snapshot.news.data),
        "indexMood": index_mood(snapshot.indices.data),
        "sourceErrors": {
            slot: snapshot.slot(slot).error
            for slot in SOURCE_SLOTS
            if snapshot.slot(slot).error
        },
    }

    return MarketReport(
        narrative=narrative,
        data_quality=data_quality,
        generated_at=generated_at or datetime.now(timezone.utc),
        model=model,
        raw_data=raw_data,
    )


class ReportService:
    """Runs the full pipeline for the "generate market report" operation."""

    def __init__(
        self,
        aggregator: Aggregator,
        llm: LLMProvider,
        cache: ReportCache | None = None,
    ) -> None:
        self._aggregator = aggregator
        self._llm = llm
        self._cache = cache
        self._lock = asyncio.Lock()
        self.last_run: ReportRun | None = None

    @property
    def cache(self) -> ReportCache | None:
        return self._cache

    async def generate(self, use_cache: bool = True) -> MarketReport:
        """Produce a report, or raise NarrativeServiceError / NarrativeParseError."""
        if not use_cache or self._cache is None or not self._cache.enabled:
            return await self._run()

        cached = self._cached()
        if cached is not None:
            return cached
        # One generation per cold cache; waiters reuse its result.
        async with self._lock:
            cached = self._cached()
            if cached is not None:
                return cached
            return await self._run()

    def _cached(self) -> MarketReport | None:
        cached = self._cache.get()
        if cached is None:
            return None
        logger.info("Returning cached market report")
        return cached.model_copy(update={"cached": True})

    async def _run(self) -> MarketReport:
        run = ReportRun()
        self.last_run = run

        run.advance(ReportStage.FETCHING)
        snapshot = await self._aggregator.collect()

        run.advance(ReportStage.SYNTHESIZING)
        indicators = compute_indicators(snapshot.price_history.data)
        prompt = build_report_prompt(snapshot, indicators)

        run.advance(ReportStage.AWAITING_NARRATIVE)
        try:
            raw_text = await self._llm.complete([{"role": "user", "content": prompt}])
        except NarrativeServiceError as e:
            run.advance(ReportStage.FAILED)
            logger.error("Report %s failed: narrative service error: %s", run.id, e)
            raise

        run.advance(ReportStage.PARSING)
        try:
            narrative = parse_narrative(raw_text)
        except NarrativeParseError as e:
            run.advance(ReportStage.FAILED)
            logger.error("Report %s failed: %s", run.id, e.reason)
            raise

        report = assemble_report(snapshot, indicators, narrative, model=self._llm.model)
        run.advance(ReportStage.COMPLETE)
        logger.info(
            "Report %s complete (mood=%s, sources ok=%d/%d)",
            run.id,
            narrative.market_mood,
            sum(report.data_quality.values()),
            len(report.data_quality),
        )

        if self._cache is not None:
            self._cache.set(report)
        return report
