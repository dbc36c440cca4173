"""MarketBrief entrypoint -- wires all components together and starts the server.

Usage:
    python main.py
    python main.py --config /path/to/config.yaml
    python main.py --once          # print one report as JSON and exit
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from aiohttp import web

from core.config import AppConfig, load_config
from core.errors import NarrativeParseError, NarrativeServiceError
from core.registry import PluginRegistry
from engine.aggregator import Aggregator
from engine.cache import ReportCache
from engine.report import ReportService
from plugins.ai_providers.openrouter import OpenRouterProvider
from plugins.market_data.fred import FredSource
from plugins.market_data.news import RSSNewsSource
from plugins.market_data.yahoo_finance import (
    BreadthSource,
    MoversSource,
    PriceHistorySource,
    QuoteListSource,
    YahooFinanceClient,
)
from server import create_app


def setup_logging(level: str) -> None:
    """Configure logging for the application."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    # Quiet down noisy libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="MarketBrief AI market report service")
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to config.yaml (default: ~/.marketbrief/config.yaml)",
    )
    parser.add_argument(
        "--env",
        type=str,
        default=None,
        help="Path to .env file (default: ~/.marketbrief/.env)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Generate a single report, print it as JSON and exit",
    )
    return parser.parse_args(argv)


def build_registry(config: AppConfig) -> tuple[PluginRegistry, list]:
    """Instantiate every source and the narrative provider from config.

    Returns the registry and the objects owning HTTP clients, to be closed
    on shutdown.
    """
    registry = PluginRegistry()
    md = config.market_data
    timeout = md.timeout

    yahoo = YahooFinanceClient(timeout=timeout)
    fred = FredSource(
        api_key=config.economic_data.api_key,
        series=config.economic_data.series,
        base_url=config.economic_data.base_url,
        timeout=timeout,
    )
    news = RSSNewsSource(feeds=md.news_feeds, limit=md.news_limit, timeout=timeout)

    registry.register_source("indices", QuoteListSource("yahoo_indices", yahoo, md.indices))
    registry.register_source("movers", MoversSource(yahoo, md.movers_universe, md.movers_limit))
    registry.register_source(
        "global_indices", QuoteListSource("yahoo_global_indices", yahoo, md.global_indices)
    )
    registry.register_source("crypto", QuoteListSource("yahoo_crypto", yahoo, md.crypto))
    registry.register_source("forex", QuoteListSource("yahoo_forex", yahoo, md.forex))
    registry.register_source(
        "commodities", QuoteListSource("yahoo_commodities", yahoo, md.commodities)
    )
    registry.register_source("economic_events", fred)
    registry.register_source("news", news)
    registry.register_source("breadth", BreadthSource(yahoo, md.breadth_universe))
    registry.register_source(
        "price_history",
        PriceHistorySource(yahoo, md.benchmark_symbol, md.benchmark_range),
    )

    ai = config.ai
    llm = OpenRouterProvider(
        api_key=ai.api_key,
        model=ai.model,
        base_url=ai.base_url,
        max_tokens=ai.max_tokens,
        temperature=ai.temperature,
        timeout=ai.timeout,
        site_name=ai.site_name,
        site_url=ai.site_url,
    )
    registry.register("llm", llm)

    return registry, [yahoo, fred, news, llm]


def build_service(config: AppConfig, registry: PluginRegistry) -> ReportService:
    aggregator = Aggregator(registry.sources(), timeout=config.market_data.timeout)
    llm = registry.get_all("llm")[0]
    return ReportService(
        aggregator=aggregator,
        llm=llm,
        cache=ReportCache(config.report.cache_ttl),
    )


async def _close_all(closeables: list) -> None:
    logger = logging.getLogger("marketbrief")
    for item in closeables:
        try:
            await item.close()
        except Exception as e:
            logger.error("Error closing %s: %s", type(item).__name__, e)


async def run_once(service: ReportService) -> int:
    """Generate one report and print it. Returns a process exit code."""
    try:
        report = await service.generate(use_cache=False)
    except (NarrativeServiceError, NarrativeParseError) as e:
        body = {"success": False, "error": e.message, "category": e.category}
        if isinstance(e, NarrativeParseError):
            body["details"] = e.excerpt
        print(json.dumps(body, indent=2))
        return 1
    print(json.dumps(report.to_response(), indent=2, default=str))
    return 0


async def run(
    config_path: str | None = None,
    env_path: str | None = None,
    once: bool = False,
) -> int:
    """Initialize all components and start the server."""
    # Load configuration
    config = load_config(config_path=config_path, env_path=env_path)
    setup_logging(config.logging.level)
    logger = logging.getLogger("marketbrief")
    logger.info("Configuration loaded from %s", config.home_path)

    registry, closeables = build_registry(config)
    logger.info("Plugin registry: %s", registry.summary())
    service = build_service(config, registry)

    if once:
        try:
            return await run_once(service)
        finally:
            await _close_all(closeables)

    # Create HTTP server
    app = create_app(config=config, registry=registry, report_service=service)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, config.server.host, config.server.port)
    await site.start()

    logger.info(
        "MarketBrief running at http://%s:%d",
        config.server.host,
        config.server.port,
    )

    # Run until interrupted
    try:
        await asyncio.Event().wait()
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
    finally:
        logger.info("Shutting down...")
        await _close_all(closeables)
        await runner.cleanup()
        logger.info("Shutdown complete")
    return 0


def main() -> None:
    args = parse_args()
    setup_logging("INFO")
    try:
        code = asyncio.run(run(config_path=args.config, env_path=args.env, once=args.once))
    except KeyboardInterrupt:
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    main()
