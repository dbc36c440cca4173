"""Core protocols -- the extension points of the report pipeline.

The core imports these protocols. Plugins implement them.
The core NEVER imports concrete implementations.

All protocols use Python's structural subtyping (typing.Protocol):
if your class has the right methods, it implements the protocol.
No inheritance required.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from core.models.sources import SourceResult


# ---------------------------------------------------------------------------
# 1. SourceFetcher -- one independent market-data source
# ---------------------------------------------------------------------------

@runtime_checkable
class SourceFetcher(Protocol):
    """Fetches the data for exactly one snapshot slot.

    Implementations return SourceResult.ok(...) or SourceResult.degraded(...)
    and raise (SourceUnavailable, ConfigurationMissing, httpx errors, ...)
    when nothing usable came back. The aggregator turns any raised error into
    a failed result carrying the slot default.
    """

    @property
    def name(self) -> str:
        """Unique fetcher name, e.g. 'yahoo_indices', 'fred'."""
        ...

    async def fetch(self) -> SourceResult:
        """Fetch fresh data for the slot."""
        ...


# ---------------------------------------------------------------------------
# 2. LLMProvider -- call language model APIs
# ---------------------------------------------------------------------------

@runtime_checkable
class LLMProvider(Protocol):
    """Abstracts the text-completion call.

    Implementations call LLM APIs via httpx (no SDK required) and raise
    NarrativeServiceError on any failure.
    """

    @property
    def name(self) -> str:
        """Provider name, e.g. 'openrouter'."""
        ...

    @property
    def model(self) -> str:
        """Model identifier sent with every request."""
        ...

    async def complete(self, messages: list[dict], **kwargs: Any) -> str:
        """Send messages to the model and return the text response."""
        ...
