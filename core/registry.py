"""Plugin registry -- stores and retrieves protocol implementations.

At startup, main.py instantiates plugins based on config.yaml and registers
them here. Source fetchers are registered under the snapshot slot they fill.
"""

from __future__ import annotations

import logging
from typing import Any

from core.models.sources import SOURCE_SLOTS
from core.protocols import LLMProvider, SourceFetcher

logger = logging.getLogger(__name__)

# All supported protocol types
PROTOCOL_TYPES = {
    "source": SourceFetcher,
    "llm": LLMProvider,
}


class PluginRegistry:
    """Central registry for all protocol implementations.

    Usage:
        registry = PluginRegistry()
        registry.register_source("indices", yahoo_indices)
        registry.register("llm", openrouter)

        registry.sources()          # {"indices": yahoo_indices}
        llm = registry.get("llm", "openrouter")
    """

    def __init__(self) -> None:
        self._plugins: dict[str, dict[str, Any]] = {key: {} for key in PROTOCOL_TYPES}
        self._slots: dict[str, Any] = {}

    def register(self, protocol_key: str, instance: Any) -> None:
        """Register a plugin instance under a protocol type.

        The instance must have a `name` property.
        """
        if protocol_key not in PROTOCOL_TYPES:
            raise ValueError(
                f"Unknown protocol key '{protocol_key}'. "
                f"Must be one of: {list(PROTOCOL_TYPES.keys())}"
            )

        name = instance.name
        if name in self._plugins[protocol_key]:
            logger.warning(
                "Overwriting existing %s plugin '%s'", protocol_key, name
            )

        self._plugins[protocol_key][name] = instance
        logger.info("Registered %s plugin: %s", protocol_key, name)

    def register_source(self, slot: str, fetcher: Any) -> None:
        """Register a fetcher as the producer of one snapshot slot."""
        if slot not in SOURCE_SLOTS:
            raise ValueError(
                f"Unknown source slot '{slot}'. Must be one of: {list(SOURCE_SLOTS)}"
            )
        if slot in self._slots:
            logger.warning("Overwriting fetcher for slot '%s'", slot)
        self._slots[slot] = fetcher
        self.register("source", fetcher)

    def get(self, protocol_key: str, name: str) -> Any:
        """Get a specific plugin by protocol type and name.

        Raises KeyError if not found.
        """
        if protocol_key not in self._plugins:
            raise KeyError(f"Unknown protocol key: {protocol_key}")
        if name not in self._plugins[protocol_key]:
            available = list(self._plugins[protocol_key].keys())
            raise KeyError(
                f"No {protocol_key} plugin named '{name}'. "
                f"Available: {available}"
            )
        return self._plugins[protocol_key][name]

    def get_all(self, protocol_key: str) -> list[Any]:
        """Get all plugins registered for a protocol type."""
        if protocol_key not in self._plugins:
            raise KeyError(f"Unknown protocol key: {protocol_key}")
        return list(self._plugins[protocol_key].values())

    def sources(self) -> dict[str, Any]:
        """Slot -> fetcher, in fixed slot order."""
        return {slot: self._slots[slot] for slot in SOURCE_SLOTS if slot in self._slots}

    def summary(self) -> dict[str, list[str]]:
        """Return a summary of all registered plugins."""
        result = {
            key: list(plugins.keys())
            for key, plugins in self._plugins.items()
            if plugins
        }
        if self._slots:
            result["slots"] = list(self.sources().keys())
        return result
