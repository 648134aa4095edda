"""
Bounded LRU cache with per-entry time-to-live.

Entries expire lazily: get() and has() never return an entry past its
deadline, even if it is still physically stored. prune() is an optional
eager sweep for housekeeping.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_SIZE = 1000
DEFAULT_TTL_SECONDS = 60.0


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of cache counters."""

    size: int
    capacity: int
    ttl_seconds: float
    hits: int
    misses: int
    hit_rate: float  # percentage, two decimals


@dataclass
class _Entry(Generic[T]):
    value: T
    expires_at: float


class LRUCache(Generic[T]):
    """
    Least-recently-used cache bounded by capacity and time-to-live.

    The OrderedDict is kept in recency order: the first key is the least
    recently used one and is evicted when an insert finds the cache full.
    """

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._entries: OrderedDict[str, _Entry[T]] = OrderedDict()
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._clock = clock
        self._hits = 0
        self._misses = 0
        logger.debug("Initialized LRU cache (max_size=%d, ttl=%ss)", max_size, ttl_seconds)

    def __len__(self) -> int:
        return len(self._entries)

    def _expired(self, entry: _Entry[T]) -> bool:
        return self._clock() > entry.expires_at

    def get(self, key: str) -> T | None:
        """Return the cached value, or None if absent or expired."""
        entry = self._entries.get(key)

        if entry is None:
            self._misses += 1
            logger.debug("Cache miss: %s", key)
            return None

        if self._expired(entry):
            del self._entries[key]
            self._misses += 1
            logger.debug("Cache miss (expired): %s", key)
            return None

        self._entries.move_to_end(key)
        self._hits += 1
        logger.debug("Cache hit: %s", key)
        return entry.value

    def set(self, key: str, value: T) -> None:
        """Insert or replace a value, evicting the LRU entry if full."""
        self._entries.pop(key, None)

        if len(self._entries) >= self._max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted LRU cache entry: %s", evicted)

        self._entries[key] = _Entry(value=value, expires_at=self._clock() + self._ttl)

    def has(self, key: str) -> bool:
        """Check presence without touching recency or hit counters."""
        entry = self._entries.get(key)
        if entry is None:
            return False
        if self._expired(entry):
            del self._entries[key]
            return False
        return True

    def delete(self, key: str) -> bool:
        """Remove a key; returns whether it was present."""
        if self._entries.pop(key, None) is None:
            return False
        logger.debug("Cache entry deleted: %s", key)
        return True

    def clear(self) -> None:
        """Drop every entry and reset hit/miss counters."""
        size = len(self._entries)
        self._entries.clear()
        self._hits = 0
        self._misses = 0
        logger.info("Cache cleared (%d entries)", size)

    def prune(self) -> int:
        """Remove all expired entries; returns the number removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now > e.expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Pruned %d expired cache entries", len(expired))
        return len(expired)

    def stats(self) -> CacheStats:
        total = self._hits + self._misses
        hit_rate = round(self._hits / total * 100, 2) if total else 0.0
        return CacheStats(
            size=len(self._entries),
            capacity=self._max_size,
            ttl_seconds=self._ttl,
            hits=self._hits,
            misses=self._misses,
            hit_rate=hit_rate,
        )
