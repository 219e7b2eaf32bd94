"""In-memory key/value cache."""

from __future__ import annotations

import logging
import time
from typing import Any

__all__ = ["MemoryCache"]


class MemoryCache:
    """Key/value cache held in the orchestrator's memory.

    Entries may carry a time-to-live; expired entries are dropped lazily on
    access. Hits and misses are counted for ``get_analytics``.
    """

    def __init__(
        self,
        default_ttl: float | None = None,
        logger: logging.Logger | logging.LoggerAdapter[Any] | None = None,
    ) -> None:
        """Initialize an empty cache.

        Args:
            default_ttl: Seconds an entry lives when ``put`` gives no ttl; None keeps entries forever.
            logger: Optional logger replacing the module logger.
        """
        self.default_ttl = default_ttl
        self.logger = logger or logging.getLogger(__name__)
        self._entries: dict[str, tuple[Any, float | None]] = {}
        self._hits = 0
        self._misses = 0

    async def put(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store a value, replacing any previous value of that key.

        Args:
            key: Cache key.
            value: Value to store.
            ttl: Optional time-to-live in seconds.
        """
        ttl = ttl if ttl is not None else self.default_ttl
        expires_at = time.monotonic() + ttl if ttl is not None else None
        self._entries[key] = (value, expires_at)
        self.logger.debug("Stored '%s'", key)

    async def get(self, key: str) -> Any:
        """Fetch a value, or None when it is missing or expired."""
        entry = self._entries.get(key)
        if entry is not None and entry[1] is not None and entry[1] <= time.monotonic():
            del self._entries[key]
            entry = None
        if entry is None:
            self._misses += 1
            return None
        self._hits += 1
        return entry[0]

    async def delete(self, key: str) -> None:
        """Remove a value. Missing keys are ignored."""
        self._entries.pop(key, None)

    async def clear(self) -> None:
        """Remove every value."""
        self._entries.clear()

    def get_analytics(self) -> dict[str, Any]:
        """Return entry count, hits, misses and hit rate."""
        lookups = self._hits + self._misses
        return {
            "entries": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / lookups if lookups else 0.0,
        }
