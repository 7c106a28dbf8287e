"""Global pytest configuration and fixtures."""

from __future__ import annotations

import pytest

from agora.cache import CacheService, CacheTTLs, KeyedTTLStore


class FakeClock:
    """Manually advanced monotonic clock for expiry tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> KeyedTTLStore:
    return KeyedTTLStore(default_ttl=300, clock=clock)


@pytest.fixture
def cache(store: KeyedTTLStore) -> CacheService:
    return CacheService(store=store, ttls=CacheTTLs())
