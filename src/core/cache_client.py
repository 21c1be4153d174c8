"""In-process cache with TTL support for derived read models (leaderboards, charts)."""

import fnmatch
import logging
import threading
import time
from typing import Any


logger = logging.getLogger(__name__)


class InMemoryCache:
    """Thread-safe key/value cache whose entries expire after a TTL."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._expiry: dict[str, float] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get_health_status(self) -> dict[str, Any]:
        """Report entry count and hit ratio for the health endpoint."""
        with self._lock:
            self._purge_expired()
            return {
                "entries": len(self._data),
                "hits": self._hits,
                "misses": self._misses,
            }

    def _purge_expired(self, keys: list[str] | None = None) -> None:
        now = time.monotonic()
        for key in list(self._expiry) if keys is None else keys:
            expiry = self._expiry.get(key)
            if expiry is not None and expiry <= now:
                self._data.pop(key, None)
                self._expiry.pop(key, None)

    async def get(self, key: str) -> str | None:
        """Return the cached value, or None when missing or expired."""
        with self._lock:
            self._purge_expired([key])
            value = self._data.get(key)
            if value is None:
                self._misses += 1
            else:
                self._hits += 1
                logger.debug("Cache hit for key: %s", key)
            return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a value; a non-positive TTL keeps it until deleted."""
        with self._lock:
            self._data[key] = value
            if ttl_seconds > 0:
                self._expiry[key] = time.monotonic() + ttl_seconds
            else:
                self._expiry.pop(key, None)
            logger.debug("Cached key: %s (TTL: %ds)", key, ttl_seconds)

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern (e.g. 'leaderboard:42:*')."""
        with self._lock:
            matching = [key for key in self._data if fnmatch.fnmatch(key, pattern)]
            for key in matching:
                self._data.pop(key, None)
                self._expiry.pop(key, None)
        if matching:
            logger.debug("Invalidated %d cache key(s) for %s", len(matching), pattern)
        return len(matching)

    async def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._data.clear()
            self._expiry.clear()
            self._hits = 0
            self._misses = 0


# Global cache client instance
cache_client = InMemoryCache()
