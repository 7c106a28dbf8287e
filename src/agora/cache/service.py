"""Read-through response cache for forum pages.

``CacheService`` is constructed once at startup and injected into route
handlers. Reads go through ``cache_read``; every committed write calls the
matching mutation hook, which purges the cached views it made stale.

Invalidation is best-effort: a failure is logged and swallowed so it can never
abort the write that triggered it. Entries missed by a failed purge still
expire within their TTL.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar

from agora.cache.invalidation import (
    InvalidationRequest,
    Mutation,
    MutationKind,
    requests_for,
    resolve,
)
from agora.cache.keys import CacheKeys
from agora.cache.stats import CacheStatistics, InstrumentedStore
from agora.cache.store import ExpirySweeper, KeyedTTLStore

if TYPE_CHECKING:
    from agora.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

HTML_CONTENT_TYPE = "text/html"


@dataclass(frozen=True)
class CacheTTLs:
    """Per-namespace time-to-live values in seconds."""

    categories: int = 600
    threads: int = 180
    user_profile: int = 300
    search_results: int = 120
    statistics: int = 600

    @classmethod
    def from_settings(cls, settings: Settings) -> "CacheTTLs":
        return cls(
            categories=settings.cache_ttl_categories,
            threads=settings.cache_ttl_threads,
            user_profile=settings.cache_ttl_user_profile,
            search_results=settings.cache_ttl_search_results,
            statistics=settings.cache_ttl_statistics,
        )


@dataclass(frozen=True)
class CachedPage:
    """A rendered response as stored in the cache."""

    body: str
    status_code: int = 200
    media_type: str = "text/html; charset=utf-8"


def is_cacheable_page(result: Any) -> bool:
    """Only successful HTML responses may be cached."""
    status_code = getattr(result, "status_code", None)
    media_type = getattr(result, "media_type", None) or ""
    return status_code == 200 and HTML_CONTENT_TYPE in media_type


class CacheService:
    """Coordinates cache keys, read-through reads and invalidation."""

    def __init__(
        self,
        store: KeyedTTLStore | None = None,
        ttls: CacheTTLs | None = None,
        check_period: float = 60,
        enabled: bool = True,
    ):
        self.store = InstrumentedStore(store or KeyedTTLStore())
        self.ttls = ttls or CacheTTLs()
        self.enabled = enabled
        self._sweeper = ExpirySweeper(self.store.inner, interval=check_period)

    @classmethod
    def from_settings(cls, settings: Settings) -> "CacheService":
        store = KeyedTTLStore(
            default_ttl=settings.cache_default_ttl,
            use_clones=settings.cache_use_clones,
        )
        return cls(
            store=store,
            ttls=CacheTTLs.from_settings(settings),
            check_period=settings.cache_check_period,
            enabled=settings.cache_enabled,
        )

    @property
    def stats(self) -> CacheStatistics:
        return self.store.stats

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Start the background expiry sweep."""
        await self._sweeper.start()

    async def stop(self) -> None:
        """Stop the background expiry sweep."""
        await self._sweeper.stop()

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper.running

    # -------------------------------------------------------------------------
    # Read-through
    # -------------------------------------------------------------------------

    async def cache_read(
        self,
        key: str,
        ttl: float,
        producer: Callable[[], Awaitable[T]],
        *,
        authenticated: bool = False,
        is_cacheable: Callable[[Any], bool] = is_cacheable_page,
    ) -> T:
        """Return the cached value for ``key`` or produce, store and return it.

        Authenticated requests bypass the cache entirely: the producer runs
        every time and nothing is written back. Exceptions raised by the
        producer propagate unchanged and nothing is cached.
        """
        if authenticated or not self.enabled:
            return await producer()

        cached = self.store.get(key)
        if cached is not None:
            logger.debug(f"Cache hit: {key}")
            return cached  # type: ignore[no-any-return]

        logger.debug(f"Cache miss: {key}")
        result = await producer()

        if is_cacheable(result):
            self.store.set(key, result, ttl)
        else:
            logger.debug(f"Not caching uncacheable result for {key}")

        return result

    # -------------------------------------------------------------------------
    # Invalidation
    # -------------------------------------------------------------------------

    def invalidate(self, request: InvalidationRequest) -> int:
        """Delete every key selected by ``request``.

        Returns the number of keys removed; 0 if the purge failed.
        """
        try:
            matching = resolve(request, self.store.keys())
            if not matching:
                return 0
            self.store.delete(matching)
        except Exception:
            logger.exception(f"Cache invalidation failed for {request.to_dict()}")
            return 0

        logger.debug(f"Invalidated {len(matching)} cache keys for {request.to_dict()}")
        return len(matching)

    def invalidate_key(self, key: str) -> int:
        return self.invalidate(InvalidationRequest.exact(key))

    def invalidate_pattern(self, pattern: str) -> int:
        """Invalidate by key or wildcard pattern (``*`` matches any substring)."""
        return self.invalidate(InvalidationRequest.from_pattern(pattern))

    def invalidate_categories(self) -> int:
        return self.invalidate_key(CacheKeys.categories())

    def invalidate_category(self, category: str) -> int:
        """Invalidate a category's thread listings and the home page."""
        removed = self.invalidate(
            InvalidationRequest.prefix(CacheKeys.category_threads_prefix(category))
        )
        return removed + self.invalidate_categories()

    def invalidate_thread(self, thread_slug: str) -> int:
        return self.invalidate_key(CacheKeys.thread(thread_slug))

    def invalidate_user(self, username: str) -> int:
        return self.invalidate_key(CacheKeys.user_profile(username))

    def invalidate_search(self) -> int:
        return self.invalidate_pattern(CacheKeys.search_pattern())

    def invalidate_statistics(self) -> int:
        return self.invalidate_key(CacheKeys.statistics())

    def apply_mutation(self, mutation: Mutation) -> int:
        """Purge everything the mutation policy lists for ``mutation``."""
        try:
            requests = requests_for(mutation)
        except Exception:
            logger.exception(f"Could not plan invalidation for {mutation.kind.value}")
            return 0

        removed = sum(self.invalidate(request) for request in requests)
        logger.info(
            f"Cache invalidated after {mutation.kind.value}",
            extra={"mutation": mutation.kind.value, "removed": removed},
        )
        return removed

    # Mutation hooks, called after the durable write commits

    def thread_created(self, category: str) -> int:
        return self.apply_mutation(Mutation(MutationKind.THREAD_CREATED, category=category))

    def post_created(self, thread: str, category: str) -> int:
        return self.apply_mutation(
            Mutation(MutationKind.POST_CREATED, thread=thread, category=category)
        )

    def post_edited(self, thread: str) -> int:
        return self.apply_mutation(Mutation(MutationKind.POST_EDITED, thread=thread))

    def post_deleted(self, thread: str, category: str) -> int:
        return self.apply_mutation(
            Mutation(MutationKind.POST_DELETED, thread=thread, category=category)
        )

    def thread_deleted(self, thread: str, category: str) -> int:
        return self.apply_mutation(
            Mutation(MutationKind.THREAD_DELETED, thread=thread, category=category)
        )

    def user_updated(self, username: str) -> int:
        return self.apply_mutation(Mutation(MutationKind.USER_UPDATED, username=username))

    # -------------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------------

    def get_statistics(self) -> dict[str, Any]:
        return self.store.snapshot()

    def reset_statistics(self) -> None:
        self.stats.reset()
        logger.info("Cache statistics reset")

    def flush_all(self) -> None:
        self.store.flush_all()
        logger.info("Cache flushed")

    def keys(self) -> list[str]:
        return self.store.keys()
