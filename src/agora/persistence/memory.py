"""In-memory forum repository.

Stands in for the relational store behind the forum: categories, threads,
posts and users with the lookups and paginated queries the page renderers
need. Methods are async because a real store is possibly slow and possibly
failing; callers must not assume otherwise.

Thread listings order pinned threads first, then by last activity (newest
first). Search is a case-insensitive substring match over thread titles and
post bodies, newest first.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from itertools import count
from typing import Generic, TypeVar

T = TypeVar("T")

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """Lowercase, hyphen-separated slug for URLs and cache keys."""
    slug = _SLUG_STRIP.sub("-", text.lower()).strip("-")
    return slug or "thread"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class RecordNotFound(LookupError):
    """A requested forum record does not exist."""

    def __init__(self, record_type: str, identifier: str | int):
        self.record_type = record_type
        self.identifier = identifier
        super().__init__(f"{record_type} '{identifier}' not found")


@dataclass
class User:
    username: str
    display_name: str = ""
    bio: str = ""
    joined_at: datetime = field(default_factory=_now)


@dataclass
class Category:
    id: int
    slug: str
    name: str
    description: str = ""
    thread_count: int = 0
    post_count: int = 0


@dataclass
class Thread:
    id: int
    slug: str
    title: str
    category_id: int
    author: str
    pinned: bool = False
    post_count: int = 0
    created_at: datetime = field(default_factory=_now)
    last_activity_at: datetime = field(default_factory=_now)


@dataclass
class Post:
    id: int
    thread_id: int
    author: str
    body: str
    is_first: bool = False
    created_at: datetime = field(default_factory=_now)
    edited_at: datetime | None = None


@dataclass
class Page(Generic[T]):
    """One page of a paginated query."""

    items: list[T]
    page: int
    per_page: int
    total: int

    @property
    def total_pages(self) -> int:
        return max(1, -(-self.total // self.per_page))

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def paginate(items: list[T], page: int, per_page: int) -> Page[T]:
    page = max(1, page)
    start = (page - 1) * per_page
    return Page(
        items=items[start : start + per_page], page=page, per_page=per_page, total=len(items)
    )


class InMemoryForumRepository:
    """Forum records held in process memory."""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._categories: dict[int, Category] = {}
        self._threads: dict[int, Thread] = {}
        self._posts: dict[int, Post] = {}
        self._ids = count(1)
        self._lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def list_categories(self) -> list[Category]:
        return sorted(self._categories.values(), key=lambda c: c.name.lower())

    async def get_category(self, slug: str) -> Category:
        for category in self._categories.values():
            if category.slug == slug:
                return category
        raise RecordNotFound("Category", slug)

    async def get_category_by_id(self, category_id: int) -> Category:
        try:
            return self._categories[category_id]
        except KeyError:
            raise RecordNotFound("Category", category_id) from None

    async def list_threads(
        self, category_slug: str, page: int = 1, per_page: int = 20
    ) -> Page[Thread]:
        category = await self.get_category(category_slug)
        threads = [t for t in self._threads.values() if t.category_id == category.id]
        # Pinned first, then most recent activity
        threads.sort(key=lambda t: t.last_activity_at, reverse=True)
        threads.sort(key=lambda t: not t.pinned)
        return paginate(threads, page, per_page)

    async def get_thread(self, slug: str) -> Thread:
        for thread in self._threads.values():
            if thread.slug == slug:
                return thread
        raise RecordNotFound("Thread", slug)

    async def list_posts(self, thread_slug: str) -> list[Post]:
        thread = await self.get_thread(thread_slug)
        posts = [p for p in self._posts.values() if p.thread_id == thread.id]
        return sorted(posts, key=lambda p: (p.created_at, p.id))

    async def get_thread_by_id(self, thread_id: int) -> Thread:
        try:
            return self._threads[thread_id]
        except KeyError:
            raise RecordNotFound("Thread", thread_id) from None

    async def get_post(self, post_id: int) -> Post:
        try:
            return self._posts[post_id]
        except KeyError:
            raise RecordNotFound("Post", post_id) from None

    async def get_user(self, username: str) -> User:
        try:
            return self._users[username]
        except KeyError:
            raise RecordNotFound("User", username) from None

    async def search(self, query: str, page: int = 1, per_page: int = 20) -> Page[Thread]:
        needle = query.strip().lower()
        if not needle:
            return paginate([], page, per_page)

        matched: dict[int, Thread] = {}
        for thread in self._threads.values():
            if needle in thread.title.lower():
                matched[thread.id] = thread
        for post in self._posts.values():
            if needle in post.body.lower():
                matched[post.thread_id] = self._threads[post.thread_id]

        results = sorted(matched.values(), key=lambda t: t.last_activity_at, reverse=True)
        return paginate(results, page, per_page)

    async def site_statistics(self, since: timedelta = timedelta(days=7)) -> dict[str, int]:
        """Record totals plus users, threads and posts created within ``since``."""
        cutoff = _now() - since
        return {
            "users": len(self._users),
            "categories": len(self._categories),
            "threads": len(self._threads),
            "posts": len(self._posts),
            "new_users": sum(1 for u in self._users.values() if u.joined_at >= cutoff),
            "new_threads": sum(1 for t in self._threads.values() if t.created_at >= cutoff),
            "new_posts": sum(1 for p in self._posts.values() if p.created_at >= cutoff),
        }

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def add_user(self, username: str, display_name: str = "", bio: str = "") -> User:
        async with self._lock:
            user = User(username=username, display_name=display_name or username, bio=bio)
            self._users[username] = user
            return user

    async def update_user(
        self, username: str, display_name: str | None = None, bio: str | None = None
    ) -> User:
        async with self._lock:
            user = await self.get_user(username)
            if display_name is not None:
                user.display_name = display_name
            if bio is not None:
                user.bio = bio
            return user

    async def add_category(
        self, name: str, description: str = "", slug: str | None = None
    ) -> Category:
        async with self._lock:
            category = Category(
                id=next(self._ids),
                slug=slug or slugify(name),
                name=name,
                description=description,
            )
            self._categories[category.id] = category
            return category

    async def create_thread(
        self, category_slug: str, author: str, title: str, body: str, pinned: bool = False
    ) -> Thread:
        async with self._lock:
            category = await self.get_category(category_slug)
            thread = Thread(
                id=next(self._ids),
                slug=self._unique_thread_slug(title),
                title=title,
                category_id=category.id,
                author=author,
                pinned=pinned,
                post_count=1,
            )
            self._threads[thread.id] = thread
            post = Post(
                id=next(self._ids),
                thread_id=thread.id,
                author=author,
                body=body,
                is_first=True,
                created_at=thread.created_at,
            )
            self._posts[post.id] = post
            category.thread_count += 1
            category.post_count += 1
            return thread

    async def create_post(self, thread_slug: str, author: str, body: str) -> Post:
        async with self._lock:
            thread = await self.get_thread(thread_slug)
            post = Post(id=next(self._ids), thread_id=thread.id, author=author, body=body)
            self._posts[post.id] = post
            thread.post_count += 1
            thread.last_activity_at = post.created_at
            self._categories[thread.category_id].post_count += 1
            return post

    async def edit_post(self, post_id: int, body: str) -> Post:
        async with self._lock:
            post = await self.get_post(post_id)
            post.body = body
            post.edited_at = _now()
            return post

    async def delete_post(self, post_id: int) -> Post:
        """Delete a reply. First posts are removed only with their thread."""
        async with self._lock:
            post = await self.get_post(post_id)
            if post.is_first:
                raise ValueError("The first post of a thread cannot be deleted on its own")
            del self._posts[post_id]
            thread = self._threads[post.thread_id]
            thread.post_count -= 1
            self._categories[thread.category_id].post_count -= 1
            return post

    async def delete_thread(self, slug: str) -> Thread:
        async with self._lock:
            thread = await self.get_thread(slug)
            removed = [pid for pid, p in self._posts.items() if p.thread_id == thread.id]
            for post_id in removed:
                del self._posts[post_id]
            del self._threads[thread.id]
            category = self._categories[thread.category_id]
            category.thread_count -= 1
            category.post_count -= len(removed)
            return thread

    def _unique_thread_slug(self, title: str) -> str:
        base = slugify(title)
        taken = {t.slug for t in self._threads.values()}
        slug, n = base, 2
        while slug in taken:
            slug = f"{base}-{n}"
            n += 1
        return slug


async def seed_demo_data(repo: InMemoryForumRepository) -> None:
    """Populate an empty repository with a small demo forum."""
    await repo.add_user("admin", "Administrator", "Keeps the lights on.")
    await repo.add_user("alice", "Alice", "Mostly lurking.")
    await repo.add_category("General", "Anything goes")
    await repo.add_category("Announcements", "News from the team")
    await repo.create_thread(
        "announcements", "admin", "Welcome to Agora", "Read the rules first.", pinned=True
    )
    await repo.create_thread("general", "alice", "Hello everyone", "First time poster here.")
