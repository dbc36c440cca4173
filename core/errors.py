"""Error taxonomy for the report pipeline.

Source-level errors (SourceUnavailable, ConfigurationMissing) are raised by
fetchers and always absorbed by the aggregator. Pipeline-level errors
(NarrativeServiceError, NarrativeParseError) are fatal for the request and
are mapped to HTTP responses by the server.
"""

from __future__ import annotations

EXCERPT_LIMIT = 500


class MarketBriefError(Exception):
    """Base error for everything raised by the report pipeline."""

    category = "internal_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class SourceUnavailable(MarketBriefError):
    """A single data source failed or returned nothing usable."""

    category = "source_unavailable"

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Source {source} unavailable: {reason}")
        self.source = source
        self.reason = reason


class ConfigurationMissing(MarketBriefError):
    """A credential required by one optional source is not configured."""

    category = "configuration_missing"

    def __init__(self, setting: str) -> None:
        super().__init__(f"Missing configuration: {setting}")
        self.setting = setting


class NarrativeServiceError(MarketBriefError):
    """The text-completion call failed (status, transport or timeout)."""

    category = "narrative_service_error"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NarrativeParseError(MarketBriefError):
    """The model reply did not contain a valid report object."""

    category = "narrative_parse_error"

    def __init__(self, reason: str, raw_text: str) -> None:
        super().__init__(f"Could not parse narrative: {reason}")
        self.reason = reason
        self.excerpt = truncate(raw_text)


def truncate(text: str, limit: int = EXCERPT_LIMIT) -> str:
    """Shorten text for diagnostics, marking the cut."""
    text = text or ""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
