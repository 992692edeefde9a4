"""Caching utilities for revscout.

In-memory cache with per-entry TTL, used to avoid re-issuing identical remote jobs.
"""

import hashlib
import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from revscout.core.logging import logger

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Stored value and the monotonic time it was stored at."""

    value: T
    stored_at: float


def cache_key(*parts: Any, **params: Any) -> str:
    """Generate a deterministic fingerprint from request parameters.

    Args:
        *parts: Positional components (e.g. target id)
        **params: Named components (e.g. locale, sort, count)

    Returns:
        SHA256 hash of the canonical JSON of the parameters
    """
    combined = json.dumps([list(parts), params], sort_keys=True, default=str)
    return hashlib.sha256(combined.encode()).hexdigest()


class ResponseCache(Generic[T]):
    """Key/value store with passive expiry.

    Entries older than ``ttl`` seconds read as absent but stay in storage until
    overwritten, cleared or swept with ``purge_expired``. Not safe for
    unsynchronized mutation from several threads; under asyncio every method is
    free of suspension points, so a single event loop needs no lock.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        """Initialize ResponseCache.

        Args:
            ttl: Time-to-live in seconds
            clock: Monotonic time source (injectable for tests)
        """
        if ttl < 0:
            raise ValueError("ttl must not be negative")
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry[T]] = {}

    def get(self, key: str) -> Optional[T]:
        """Retrieve a cached value if present and not expired."""
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("cache_miss", key=key)
            return None
        if self._clock() - entry.stored_at >= self.ttl:
            logger.debug("cache_expired", key=key)
            return None
        logger.debug("cache_hit", key=key)
        return entry.value

    def put(self, key: str, value: T) -> None:
        """Store a value, replacing any previous entry for the key."""
        self._entries[key] = CacheEntry(value=value, stored_at=self._clock())
        logger.debug("cache_stored", key=key)

    def clear(self, key: Optional[str] = None) -> None:
        """Remove one entry, or every entry when no key is given."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)
        logger.info("cache_cleared", key=key or "*")

    def purge_expired(self) -> int:
        """Evict expired entries. Returns how many were removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now - e.stored_at >= self.ttl]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dictionary with stored entry count, live entry count and TTL
        """
        now = self._clock()
        live = sum(1 for e in self._entries.values() if now - e.stored_at < self.ttl)
        return {"size": len(self._entries), "live": live, "ttl_seconds": self.ttl}
