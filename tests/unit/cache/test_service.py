"""Tests for the read-through cache service."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, patch

import pytest

from agora.cache import CachedPage, CacheKeys, CacheService, InvalidationRequest
from agora.cache.service import is_cacheable_page
from agora.config import Settings


def page(body: str, status_code: int = 200, media_type: str = "text/html") -> CachedPage:
    return CachedPage(body=body, status_code=status_code, media_type=media_type)


def seed(cache: CacheService, *keys: str) -> None:
    for key in keys:
        cache.store.set(key, page(key), 600)


class TestIsCacheablePage:
    """Tests for the success predicate."""

    def test_ok_html_is_cacheable(self) -> None:
        assert is_cacheable_page(page("x", media_type="text/html; charset=utf-8"))

    def test_error_status_is_not_cacheable(self) -> None:
        assert not is_cacheable_page(page("x", status_code=500))
        assert not is_cacheable_page(page("x", status_code=404))

    def test_non_html_is_not_cacheable(self) -> None:
        assert not is_cacheable_page(page("{}", media_type="application/json"))

    def test_plain_values_are_not_cacheable(self) -> None:
        assert not is_cacheable_page("<html></html>")
        assert not is_cacheable_page(None)


class TestCacheRead:
    """Tests for CacheService.cache_read."""

    @pytest.mark.asyncio
    async def test_miss_calls_producer_and_stores(self, cache: CacheService) -> None:
        """A miss runs the producer once and caches its result."""
        producer_a = AsyncMock(return_value=page("categories A"))
        producer_b = AsyncMock(return_value=page("categories B"))

        first = await cache.cache_read("categories:all", 600, producer_a)
        second = await cache.cache_read("categories:all", 600, producer_b)

        assert first.body == "categories A"
        assert second.body == "categories A"
        producer_a.assert_awaited_once()
        producer_b.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self, cache: CacheService, clock) -> None:
        """Once the TTL elapses the producer runs again."""
        producer = AsyncMock(return_value=page("fresh"))
        await cache.cache_read("thread:abc", 180, producer)
        clock.advance(180)
        await cache.cache_read("thread:abc", 180, producer)

        assert producer.await_count == 2

    @pytest.mark.asyncio
    async def test_authenticated_bypasses_cache(self, cache: CacheService) -> None:
        """Signed-in reads always run the producer and never write back."""
        seed(cache, "thread:abc")
        producer = AsyncMock(return_value=page("live"))

        with patch.object(cache.store, "set", wraps=cache.store.set) as store_set:
            for _ in range(3):
                result = await cache.cache_read(
                    "thread:abc", 180, producer, authenticated=True
                )
                assert result.body == "live"

        assert producer.await_count == 3
        store_set.assert_not_called()
        assert cache.store.inner.get("thread:abc").body == "thread:abc"

    @pytest.mark.asyncio
    async def test_failed_result_is_not_cached(self, cache: CacheService) -> None:
        """A 500 result is returned but not stored."""
        failing = AsyncMock(return_value=page("oops", status_code=500))
        recovered = AsyncMock(return_value=page("ok"))

        result = await cache.cache_read("thread:abc", 180, failing)
        assert result.status_code == 500

        result = await cache.cache_read("thread:abc", 180, recovered)
        recovered.assert_awaited_once()
        assert result.body == "ok"

    @pytest.mark.asyncio
    async def test_producer_exception_propagates(self, cache: CacheService) -> None:
        """Producer errors reach the caller untouched and nothing is cached."""
        producer = AsyncMock(side_effect=LookupError("thread gone"))

        with pytest.raises(LookupError, match="thread gone"):
            await cache.cache_read("thread:abc", 180, producer)

        assert cache.keys() == []

    @pytest.mark.asyncio
    async def test_custom_predicate(self, cache: CacheService) -> None:
        """Callers can cache non-page values with their own predicate."""
        producer = AsyncMock(return_value={"threads": 3})

        await cache.cache_read("admin:statistics", 600, producer, is_cacheable=bool)
        result = await cache.cache_read("admin:statistics", 600, producer, is_cacheable=bool)

        assert result == {"threads": 3}
        producer.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_disabled_cache_always_produces(self, store) -> None:
        """With caching disabled every read runs the producer."""
        cache = CacheService(store=store, enabled=False)
        producer = AsyncMock(return_value=page("x"))

        await cache.cache_read("categories:all", 600, producer)
        await cache.cache_read("categories:all", 600, producer)

        assert producer.await_count == 2
        assert cache.keys() == []


class TestInvalidation:
    """Tests for invalidation entry points and mutation hooks."""

    def test_invalidate_pattern_scope(self, cache: CacheService) -> None:
        seed(
            cache,
            "category:5:threads:page:1",
            "category:5:threads:page:2",
            "category:9:threads:page:1",
        )

        assert cache.invalidate_pattern("category:5:threads:*") == 2
        assert cache.keys() == ["category:9:threads:page:1"]

    def test_invalidate_pattern_without_wildcard_is_exact(self, cache: CacheService) -> None:
        seed(cache, "thread:abc", "thread:abcd")
        assert cache.invalidate_pattern("thread:abc") == 1
        assert cache.keys() == ["thread:abcd"]

    def test_pattern_sees_keys_created_later(self, cache: CacheService) -> None:
        """Patterns resolve against the live key set on every call."""
        seed(cache, "search:a:page:1")
        cache.invalidate_search()
        seed(cache, "search:b:page:1", "search:b:page:2")

        assert cache.invalidate_search() == 2

    def test_invalidate_missing_key_is_noop(self, cache: CacheService) -> None:
        assert cache.invalidate_thread("nope") == 0

    def test_thread_created_clears_category_listing(self, cache: CacheService) -> None:
        """Creating a thread drops the category listing, home page and search."""
        seed(
            cache,
            CacheKeys.category_threads("general", 1),
            CacheKeys.category_threads("general", 2),
            CacheKeys.categories(),
            CacheKeys.search_results("hello"),
            CacheKeys.category_threads("other", 1),
        )

        cache.thread_created("general")

        assert cache.store.inner.get(CacheKeys.category_threads("general", 1)) is None
        assert cache.keys() == [CacheKeys.category_threads("other", 1)]

    def test_reply_invalidates_only_its_thread(self, cache: CacheService) -> None:
        seed(cache, "thread:abc", "thread:xyz", "category:general:threads:page:1")

        cache.post_created("abc", "general")

        assert cache.store.inner.get("thread:abc") is None
        assert cache.store.inner.get("thread:xyz") is not None
        assert cache.store.inner.get("category:general:threads:page:1") is None

    def test_post_edited_keeps_listings(self, cache: CacheService) -> None:
        seed(cache, "thread:abc", "category:general:threads:page:1", "search:abc:page:1")

        cache.post_edited("abc")

        assert cache.keys() == ["category:general:threads:page:1"]

    def test_post_and_thread_deleted(self, cache: CacheService) -> None:
        """Deletes purge the thread, its category listing, search and statistics."""
        seed(
            cache,
            "thread:abc",
            "category:general:threads:page:1",
            "categories:all",
            "search:x:page:1",
            "admin:statistics",
        )
        cache.post_deleted("abc", "general")
        assert cache.keys() == ["categories:all"]

        seed(cache, "thread:abc", "category:general:threads:page:1", "search:x:page:1")
        cache.thread_deleted("abc", "general")
        assert cache.keys() == []

    def test_wildcard_in_category_slug_is_literal(self, cache: CacheService) -> None:
        """Purging category "a*" leaves category "abc" alone."""
        seed(cache, "category:a*:threads:page:1", "category:abc:threads:page:1")

        cache.thread_created("a*")
        assert cache.keys() == ["category:abc:threads:page:1"]

        seed(cache, "category:a*:threads:page:2")
        assert cache.invalidate_category("a*") == 1
        assert cache.keys() == ["category:abc:threads:page:1"]

    def test_statistics_purged_by_count_changes(self, cache: CacheService) -> None:
        seed(cache, "admin:statistics")
        cache.post_edited("abc")
        assert cache.keys() == ["admin:statistics"]

        cache.post_created("abc", "general")
        assert cache.keys() == []

    def test_user_updated(self, cache: CacheService) -> None:
        seed(cache, "user:alice:profile", "user:bob:profile")
        cache.user_updated("alice")
        assert cache.keys() == ["user:bob:profile"]

    def test_invalidate_category_drops_home_page(self, cache: CacheService) -> None:
        seed(cache, "category:general:threads:page:3", "categories:all")
        assert cache.invalidate_category("general") == 2

    def test_invalidation_failure_is_swallowed(
        self, cache: CacheService, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A failing purge is logged and reported as zero removals."""
        seed(cache, "thread:abc")

        with patch.object(cache.store, "delete", side_effect=RuntimeError("store broke")):
            with caplog.at_level(logging.ERROR, logger="agora.cache.service"):
                assert cache.invalidate(InvalidationRequest.exact("thread:abc")) == 0

        assert "Cache invalidation failed" in caplog.text

    def test_bad_request_is_swallowed(self, cache: CacheService) -> None:
        assert cache.invalidate(InvalidationRequest.glob("")) == 0

    def test_mutation_hooks_never_raise(self, cache: CacheService) -> None:
        """Hooks with missing identifiers log and return 0."""
        assert cache.post_created("", "") == 0


class TestAdministration:
    """Tests for statistics and flush operations."""

    @pytest.mark.asyncio
    async def test_statistics(self, cache: CacheService) -> None:
        producer = AsyncMock(return_value=page("x"))
        await cache.cache_read("categories:all", 600, producer)
        await cache.cache_read("categories:all", 600, producer)
        cache.invalidate_categories()

        stats = cache.get_statistics()
        assert stats == {
            "hits": 1,
            "misses": 1,
            "sets": 1,
            "deletes": 1,
            "hit_rate": 0.5,
            "key_count": 0,
        }

    def test_reset_statistics(self, cache: CacheService) -> None:
        cache.store.get("missing")
        cache.reset_statistics()
        assert cache.get_statistics()["misses"] == 0

    def test_flush_all_keeps_statistics(self, cache: CacheService) -> None:
        seed(cache, "thread:abc")
        cache.flush_all()
        assert cache.keys() == []
        assert cache.get_statistics()["sets"] == 1

    def test_from_settings(self) -> None:
        settings = Settings(cache_ttl_threads=90, cache_check_period=5, cache_use_clones=False)
        cache = CacheService.from_settings(settings)

        assert cache.ttls.threads == 90
        assert cache.ttls.categories == 600
        assert cache.store.inner.use_clones is False

    @pytest.mark.asyncio
    async def test_start_stop(self, cache: CacheService) -> None:
        await cache.start()
        assert cache.sweeper_running
        await cache.stop()
        assert not cache.sweeper_running
