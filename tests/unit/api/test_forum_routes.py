"""Tests for forum pages and the cache behaviour of write endpoints.

The app is seeded with the demo forum:
- categories "general" and "announcements"
- thread "hello-everyone" (alice, general) with first post id 6
- thread "welcome-to-agora" (admin, announcements, pinned) with first post id 4
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from agora.api.app import create_app
from agora.cache import CacheService
from agora.config import Settings

ALICE = {"X-Forum-User": "alice"}
BOB = {"X-Forum-User": "bob"}
ADMIN = {"X-Forum-User": "admin"}


@pytest.fixture
def app() -> FastAPI:
    return create_app(settings=Settings(seed_demo=True, env="test"))


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as client:
        yield client


@pytest.fixture
def cache(app: FastAPI) -> CacheService:
    return app.state.cache


class TestCachedReads:
    """Anonymous page views go through the response cache."""

    def test_home_is_cached(self, client: TestClient, cache: CacheService) -> None:
        first = client.get("/")
        second = client.get("/")

        assert first.status_code == 200
        assert "text/html" in first.headers["content-type"]
        assert "General" in first.text
        assert second.text == first.text
        assert "categories:all" in cache.keys()
        assert cache.get_statistics()["hits"] == 1

    def test_category_pages_are_keyed_by_page(
        self, client: TestClient, cache: CacheService
    ) -> None:
        client.get("/categories/general")
        client.get("/categories/general?page=2")

        assert "category:general:threads:page:1" in cache.keys()
        assert "category:general:threads:page:2" in cache.keys()

    def test_thread_and_profile_are_cached(
        self, client: TestClient, cache: CacheService
    ) -> None:
        assert client.get("/threads/hello-everyone").status_code == 200
        assert client.get("/users/alice").status_code == 200

        assert "thread:hello-everyone" in cache.keys()
        assert "user:alice:profile" in cache.keys()

    def test_search_keys_use_raw_query(self, client: TestClient, cache: CacheService) -> None:
        client.get("/search", params={"q": "Hello"})
        client.get("/search", params={"q": "hello"})

        assert "search:Hello:page:1" in cache.keys()
        assert "search:hello:page:1" in cache.keys()

    def test_not_found_is_not_cached(self, client: TestClient, cache: CacheService) -> None:
        response = client.get("/threads/does-not-exist")

        assert response.status_code == 404
        assert response.json()["messages"][0]["code"] == "NotFound"
        assert "thread:does-not-exist" not in cache.keys()

    def test_signed_in_users_bypass_cache(
        self, client: TestClient, cache: CacheService
    ) -> None:
        client.get("/", headers=ALICE)
        client.get("/threads/hello-everyone", headers=ALICE)

        assert cache.keys() == []
        stats = cache.get_statistics()
        assert stats["hits"] == 0
        assert stats["misses"] == 0

    def test_signed_in_users_see_live_data(self, client: TestClient, app: FastAPI) -> None:
        """A stale cached page is never shown to a signed-in user."""
        client.get("/threads/hello-everyone")
        # Write behind the cache's back so the cached copy goes stale
        repo = app.state.repository
        thread = repo._threads[5]
        thread.title = "Renamed behind the cache"

        anonymous = client.get("/threads/hello-everyone")
        signed_in = client.get("/threads/hello-everyone", headers=ALICE)

        assert "Renamed behind the cache" not in anonymous.text
        assert "Renamed behind the cache" in signed_in.text


class TestWriteInvalidation:
    """Writes purge the cached pages they made stale before responding."""

    def test_create_thread_clears_category_listing(
        self, client: TestClient, cache: CacheService
    ) -> None:
        before = client.get("/categories/general")
        client.get("/")
        client.get("/search", params={"q": "caching"})
        assert "category:general:threads:page:1" in cache.keys()

        response = client.post(
            "/categories/general/threads",
            json={"title": "Caching questions", "body": "How long do pages live?"},
            headers=ALICE,
        )

        assert response.status_code == 201
        assert response.json()["slug"] == "caching-questions"
        assert "category:general:threads:page:1" not in cache.keys()
        assert "categories:all" not in cache.keys()
        assert not any(key.startswith("search:") for key in cache.keys())

        after = client.get("/categories/general")
        assert "Caching questions" not in before.text
        assert "Caching questions" in after.text

    def test_reply_invalidates_only_its_thread(
        self, client: TestClient, cache: CacheService
    ) -> None:
        client.get("/threads/hello-everyone")
        client.get("/threads/welcome-to-agora")

        response = client.post(
            "/threads/hello-everyone/posts", json={"body": "Welcome aboard"}, headers=BOB
        )

        assert response.status_code == 201
        assert "thread:hello-everyone" not in cache.keys()
        assert "thread:welcome-to-agora" in cache.keys()
        assert "Welcome aboard" in client.get("/threads/hello-everyone").text

    def test_edit_post_invalidates_thread(
        self, client: TestClient, cache: CacheService
    ) -> None:
        client.get("/threads/hello-everyone")
        client.get("/categories/general")

        response = client.patch("/posts/6", json={"body": "Edited greeting"}, headers=ALICE)

        assert response.status_code == 200
        assert "thread:hello-everyone" not in cache.keys()
        assert "category:general:threads:page:1" in cache.keys()
        assert "Edited greeting" in client.get("/threads/hello-everyone").text

    def test_edit_post_requires_owner(self, client: TestClient) -> None:
        response = client.patch("/posts/6", json={"body": "Hijacked"}, headers=BOB)
        assert response.status_code == 403

    def test_delete_reply(self, client: TestClient, cache: CacheService) -> None:
        reply = client.post("/threads/hello-everyone/posts", json={"body": "oops"}, headers=BOB)
        client.get("/threads/hello-everyone")
        client.get("/categories/general")

        response = client.delete(f"/posts/{reply.json()['id']}", headers=BOB)

        assert response.status_code == 200
        assert "thread:hello-everyone" not in cache.keys()
        assert "category:general:threads:page:1" not in cache.keys()

    def test_first_post_cannot_be_deleted(self, client: TestClient) -> None:
        response = client.delete("/posts/6", headers=ALICE)
        assert response.status_code == 400

    def test_delete_thread(self, client: TestClient, cache: CacheService) -> None:
        client.get("/threads/hello-everyone")
        client.get("/categories/general")
        client.get("/")

        response = client.delete("/threads/hello-everyone", headers=ADMIN)

        assert response.status_code == 200
        assert cache.keys() == []
        assert client.get("/threads/hello-everyone").status_code == 404

    def test_update_profile_invalidates_profile(
        self, client: TestClient, cache: CacheService
    ) -> None:
        client.get("/users/alice")
        client.get("/users/admin")

        response = client.patch("/users/alice", json={"bio": "Now posting"}, headers=ALICE)

        assert response.status_code == 200
        assert cache.keys() == ["user:admin:profile"]
        assert "Now posting" in client.get("/users/alice").text

    def test_cannot_edit_someone_elses_profile(self, client: TestClient) -> None:
        response = client.patch("/users/alice", json={"bio": "x"}, headers=BOB)
        assert response.status_code == 403

    def test_anonymous_writes_are_rejected(
        self, client: TestClient, cache: CacheService
    ) -> None:
        client.get("/categories/general")

        response = client.post(
            "/categories/general/threads", json={"title": "Spam", "body": "spam"}
        )

        assert response.status_code == 401
        assert "category:general:threads:page:1" in cache.keys()

    def test_writes_carry_no_store_headers(self, client: TestClient) -> None:
        response = client.post(
            "/threads/hello-everyone/posts", json={"body": "hi"}, headers=BOB
        )
        assert response.headers["Cache-Control"].startswith("no-store")


class TestHealth:
    """Tests for health probes."""

    def test_live(self, client: TestClient) -> None:
        assert client.get("/health/live").json() == {"status": "ok"}

    def test_ready_reports_running_sweeper(self, client: TestClient) -> None:
        body = client.get("/health/ready").json()
        assert body["status"] == "ready"
        assert body["checks"]["cache"] == "healthy"
