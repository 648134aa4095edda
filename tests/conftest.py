from datetime import UTC, datetime

import pytest

from src.adapters.clock import FixedClock
from src.adapters.kv_store import InMemoryKeyValueStore
from src.components.redirects import LRUCache, RedirectConfig, RedirectService, RuleTable


class FakeMonotonic:
    """Manually advanced monotonic clock for cache expiry tests."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def fixed_clock() -> FixedClock:
    return FixedClock(datetime(2025, 6, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def config() -> RedirectConfig:
    return RedirectConfig()


@pytest.fixture
def service(
    store: InMemoryKeyValueStore,
    config: RedirectConfig,
    monotonic: FakeMonotonic,
    fixed_clock: FixedClock,
) -> RedirectService:
    """Service with deterministic cache expiry and wall clock."""
    cache = LRUCache[RuleTable](
        max_size=config.cache_max_size,
        ttl_seconds=config.cache_ttl_seconds,
        clock=monotonic,
    )
    return RedirectService(store=store, config=config, cache=cache, clock=fixed_clock)
