"""Process-local key/value store with per-entry expiration.

Entries are logically absent once the clock reaches their expiry time; every
read performs its own expiry check, so correctness never depends on the
background sweep having run. Reads never extend an entry's lifetime.

State is volatile: nothing survives a process restart.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import threading
import time
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

# Default TTL (5 minutes)
DEFAULT_TTL = 300

# Default sweep interval (1 minute)
DEFAULT_CHECK_PERIOD = 60

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    """A stored value and the monotonic time at which it expires."""

    key: str
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class KeyedTTLStore:
    """In-memory map from string key to an expiring entry.

    At most one entry exists per key; ``set`` overwrites. A lock guards each
    operation because sync FastAPI dependencies may run in a threadpool.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        use_clones: bool = True,
        clock: Clock = time.monotonic,
    ):
        self.default_ttl = default_ttl
        self.use_clones = use_clones
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def _clone(self, value: Any) -> Any:
        return copy.deepcopy(value) if self.use_clones else value

    def get(self, key: str) -> Any | None:
        """Return the value for ``key``, or None if unset, deleted or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.is_expired(self._clock()):
                return None
            value = entry.value
        return self._clone(value)

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Insert or overwrite ``key`` with a fresh expiry of ``ttl`` seconds."""
        lifetime = self.default_ttl if ttl is None else ttl
        stored = self._clone(value)
        with self._lock:
            self._entries[key] = CacheEntry(
                key=key, value=stored, expires_at=self._clock() + lifetime
            )

    def delete(self, keys: str | Iterable[str]) -> int:
        """Remove one or more keys. Missing keys are ignored.

        Returns the number of entries removed.
        """
        if isinstance(keys, str):
            keys = [keys]
        removed = 0
        with self._lock:
            for key in keys:
                if self._entries.pop(key, None) is not None:
                    removed += 1
        return removed

    def keys(self) -> list[str]:
        """All held keys, including expired entries not yet swept."""
        with self._lock:
            return list(self._entries)

    def size(self) -> int:
        """Number of live (unexpired) entries."""
        with self._lock:
            now = self._clock()
            return sum(1 for entry in self._entries.values() if not entry.is_expired(now))

    def ttl(self, key: str) -> float | None:
        """Seconds until ``key`` expires, or None if it is absent."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            remaining = entry.expires_at - self._clock()
        return remaining if remaining > 0 else None

    def flush_all(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()

    def sweep(self) -> int:
        """Physically remove expired entries. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)


class ExpirySweeper:
    """Periodically sweeps expired entries out of a store.

    Runs as an asyncio task; should be started during application startup
    and stopped during shutdown.
    """

    def __init__(self, store: KeyedTTLStore, interval: float = DEFAULT_CHECK_PERIOD):
        self.store = store
        self.interval = interval
        self._running = False
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the sweep loop."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._sweep_loop())
        logger.info(f"Started cache sweeper (every {self.interval}s)")

    async def stop(self) -> None:
        """Stop the sweep loop."""
        if not self._running:
            return
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Stopped cache sweeper")

    async def _sweep_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval)
                removed = self.store.sweep()
                if removed:
                    logger.debug(f"Swept {removed} expired cache entries")
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Cache sweep failed: {e}")
