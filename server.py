"""Lightweight aiohttp server -- the report HTTP API.

Two routes: a health check and the market report. No framework magic, no
middleware stack.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aiohttp import web

from core.errors import MarketBriefError, NarrativeParseError, NarrativeServiceError

if TYPE_CHECKING:
    from core.config import AppConfig
    from core.registry import PluginRegistry
    from engine.report import ReportService

logger = logging.getLogger(__name__)


def create_app(
    config: AppConfig,
    registry: PluginRegistry,
    report_service: ReportService,
) -> web.Application:
    """Create and configure the aiohttp application."""
    app = web.Application()

    # Store references for route handlers
    app["config"] = config
    app["registry"] = registry
    app["report_service"] = report_service

    # Register routes
    app.router.add_get("/health", handle_health)
    app.router.add_get("/market/report", handle_market_report)

    return app


def error_response(error: MarketBriefError) -> web.Response:
    """Map a pipeline error to the structured failure payload."""
    body = {
        "success": False,
        "error": error.message,
        "category": error.category,
    }
    if isinstance(error, NarrativeParseError):
        body["details"] = error.excerpt
        status = 422
    elif isinstance(error, NarrativeServiceError):
        if error.status_code is not None:
            body["upstreamStatus"] = error.status_code
        status = 502
    else:
        status = 500
    return web.json_response(body, status=status)


# ---------------------------------------------------------------------------
# Route handlers
# ---------------------------------------------------------------------------

async def handle_health(request: web.Request) -> web.Response:
    """GET /health -- health check."""
    registry: PluginRegistry = request.app["registry"]
    summary = registry.summary()
    return web.json_response({
        "status": "ok",
        "sources": summary.get("slots", []),
        "llm": summary.get("llm", []),
    })


async def handle_market_report(request: web.Request) -> web.Response:
    """GET /market/report -- generate (or serve the cached) market report.

    ?refresh=1 bypasses the cache.
    """
    service: ReportService = request.app["report_service"]
    refresh = request.query.get("refresh", "").lower() in {"1", "true", "yes"}

    try:
        report = await service.generate(use_cache=not refresh)
    except (NarrativeServiceError, NarrativeParseError) as e:
        return error_response(e)
    except Exception:
        logger.exception("Unexpected failure while generating report")
        return web.json_response(
            {"success": False, "error": "Internal error", "category": "internal_error"},
            status=500,
        )

    body = report.to_response()
    if service.cache is not None and service.cache.enabled:
        body["cacheExpiresIn"] = service.cache.remaining()
    return web.json_response(body)
