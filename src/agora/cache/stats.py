"""Hit/miss/set/delete accounting for the response cache.

``InstrumentedStore`` wraps a store by composition and counts around each
delegated call. Deletes are counted once per call, not once per key, so a
bulk pattern purge of fifty keys adds one to ``deletes``.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from agora.cache.store import KeyedTTLStore


@dataclass
class CacheStatistics:
    """Process-wide cache counters. Never persisted."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def record_hit(self) -> None:
        with self._lock:
            self.hits += 1

    def record_miss(self) -> None:
        with self._lock:
            self.misses += 1

    def record_set(self) -> None:
        with self._lock:
            self.sets += 1

    def record_delete(self) -> None:
        with self._lock:
            self.deletes += 1

    def reset(self) -> None:
        with self._lock:
            self.hits = 0
            self.misses = 0
            self.sets = 0
            self.deletes = 0


class InstrumentedStore:
    """Store wrapper that records statistics for every operation."""

    def __init__(self, inner: KeyedTTLStore, stats: CacheStatistics | None = None):
        self.inner = inner
        self.stats = stats or CacheStatistics()

    def get(self, key: str) -> Any | None:
        value = self.inner.get(key)
        if value is not None:
            self.stats.record_hit()
        else:
            self.stats.record_miss()
        return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        self.stats.record_set()
        self.inner.set(key, value, ttl)

    def delete(self, keys: str | Iterable[str]) -> int:
        self.stats.record_delete()
        return self.inner.delete(keys)

    def keys(self) -> list[str]:
        return self.inner.keys()

    def size(self) -> int:
        return self.inner.size()

    def ttl(self, key: str) -> float | None:
        return self.inner.ttl(key)

    def flush_all(self) -> None:
        self.inner.flush_all()

    def sweep(self) -> int:
        return self.inner.sweep()

    def snapshot(self) -> dict[str, Any]:
        """Current counters plus derived hit rate and live key count."""
        return {
            "hits": self.stats.hits,
            "misses": self.stats.misses,
            "sets": self.stats.sets,
            "deletes": self.stats.deletes,
            "hit_rate": self.stats.hit_rate,
            "key_count": self.inner.size(),
        }
