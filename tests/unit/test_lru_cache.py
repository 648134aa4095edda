"""
Tests for the bounded LRU cache.
"""

from __future__ import annotations

import pytest

from src.components.redirects import LRUCache


@pytest.fixture
def cache(monotonic) -> LRUCache[str]:
    return LRUCache[str](max_size=3, ttl_seconds=10, clock=monotonic)


class TestGetSet:
    """Tests for basic reads and writes."""

    def test_set_then_get(self, cache: LRUCache[str]) -> None:
        cache.set("a", "1")
        assert cache.get("a") == "1"

    def test_missing_key_returns_none(self, cache: LRUCache[str]) -> None:
        assert cache.get("nope") is None

    def test_set_replaces_value(self, cache: LRUCache[str]) -> None:
        cache.set("a", "1")
        cache.set("a", "2")
        assert cache.get("a") == "2"
        assert len(cache) == 1

    def test_invalid_capacity(self) -> None:
        with pytest.raises(ValueError):
            LRUCache[str](max_size=0)


class TestEviction:
    """Tests for least-recently-used eviction."""

    def test_evicts_least_recently_used_not_first_inserted(self, cache: LRUCache[str]) -> None:
        cache.set("a", "1")
        cache.set("b", "2")
        cache.set("c", "3")
        cache.get("a")

        cache.set("d", "4")

        assert not cache.has("b")
        assert cache.has("a")
        assert cache.has("c")
        assert cache.has("d")
        assert len(cache) == 3

    def test_replacing_existing_key_does_not_evict(self, cache: LRUCache[str]) -> None:
        cache.set("a", "1")
        cache.set("b", "2")
        cache.set("c", "3")
        cache.set("b", "22")

        assert len(cache) == 3
        assert cache.has("a")


class TestExpiry:
    """Tests for time-to-live handling."""

    def test_entry_alive_at_deadline(self, cache: LRUCache[str], monotonic) -> None:
        cache.set("a", "1")
        monotonic.advance(10)
        assert cache.get("a") == "1"

    def test_expired_entry_is_a_miss(self, cache: LRUCache[str], monotonic) -> None:
        cache.set("a", "1")
        monotonic.advance(10.5)

        assert cache.get("a") is None
        assert len(cache) == 0
        assert cache.stats().misses == 1

    def test_has_respects_expiry(self, cache: LRUCache[str], monotonic) -> None:
        cache.set("a", "1")
        monotonic.advance(11)
        assert not cache.has("a")

    def test_set_refreshes_deadline(self, cache: LRUCache[str], monotonic) -> None:
        cache.set("a", "1")
        monotonic.advance(8)
        cache.set("a", "2")
        monotonic.advance(8)
        assert cache.get("a") == "2"

    def test_prune_removes_only_expired(self, cache: LRUCache[str], monotonic) -> None:
        cache.set("a", "1")
        monotonic.advance(5)
        cache.set("b", "2")
        monotonic.advance(7)

        assert cache.prune() == 1
        assert len(cache) == 1
        assert cache.has("b")


class TestStats:
    """Tests for counters and housekeeping."""

    def test_hit_rate_percentage(self, cache: LRUCache[str]) -> None:
        cache.set("a", "1")
        cache.get("a")
        cache.get("a")
        cache.get("missing")

        stats = cache.stats()
        assert stats.hits == 2
        assert stats.misses == 1
        assert stats.hit_rate == 66.67
        assert stats.size == 1
        assert stats.capacity == 3
        assert stats.ttl_seconds == 10

    def test_empty_hit_rate_is_zero(self, cache: LRUCache[str]) -> None:
        assert cache.stats().hit_rate == 0.0

    def test_has_does_not_touch_counters(self, cache: LRUCache[str]) -> None:
        cache.set("a", "1")
        cache.has("a")
        cache.has("b")
        stats = cache.stats()
        assert stats.hits == 0
        assert stats.misses == 0

    def test_delete(self, cache: LRUCache[str]) -> None:
        cache.set("a", "1")
        assert cache.delete("a") is True
        assert cache.delete("a") is False

    def test_clear_resets_counters(self, cache: LRUCache[str]) -> None:
        cache.set("a", "1")
        cache.get("a")
        cache.get("b")

        cache.clear()

        stats = cache.stats()
        assert stats.size == 0
        assert stats.hits == 0
        assert stats.misses == 0
