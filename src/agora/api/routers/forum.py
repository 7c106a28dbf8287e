"""Forum pages and write endpoints.

Read endpoints render HTML through the response cache; signed-in users always
bypass it and see live data. Write endpoints commit to the repository first,
then invalidate every cached page the write made stale, then respond.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Query
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field

from agora.api import views
from agora.api.deps import (
    CacheDep,
    CurrentUser,
    PageQuery,
    RepositoryDep,
    RequiredUser,
    SettingsDep,
)
from agora.api.errors import BadRequestError, ForbiddenError
from agora.cache import CachedPage, CacheKeys
from agora.config import Settings
from agora.persistence.memory import Post

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Forum"])


def page_response(page: CachedPage) -> HTMLResponse:
    return HTMLResponse(content=page.body, status_code=page.status_code, media_type=page.media_type)


# =============================================================================
# Request models
# =============================================================================


class ThreadCreate(BaseModel):
    title: str = Field(min_length=3, max_length=200)
    body: str = Field(min_length=1)


class PostCreate(BaseModel):
    body: str = Field(min_length=1)


class PostEdit(BaseModel):
    body: str = Field(min_length=1)


class ProfileUpdate(BaseModel):
    display_name: str | None = Field(default=None, max_length=80)
    bio: str | None = Field(default=None, max_length=2000)


# =============================================================================
# Cached reads
# =============================================================================


@router.get("/", response_class=HTMLResponse)
async def show_home(cache: CacheDep, repo: RepositoryDep, user: CurrentUser) -> HTMLResponse:
    """Category listing (home page)."""

    async def render() -> CachedPage:
        return views.render_home(await repo.list_categories())

    page = await cache.cache_read(
        CacheKeys.categories(), cache.ttls.categories, render, authenticated=user is not None
    )
    return page_response(page)


@router.get("/categories/{slug}", response_class=HTMLResponse)
async def show_category(
    slug: str,
    cache: CacheDep,
    repo: RepositoryDep,
    settings: SettingsDep,
    user: CurrentUser,
    page: PageQuery = 1,
) -> HTMLResponse:
    """One page of a category's threads, pinned first."""

    async def render() -> CachedPage:
        category = await repo.get_category(slug)
        threads = await repo.list_threads(slug, page, settings.threads_per_page)
        return views.render_category(category, threads)

    result = await cache.cache_read(
        CacheKeys.category_threads(slug, page),
        cache.ttls.threads,
        render,
        authenticated=user is not None,
    )
    return page_response(result)


@router.get("/threads/{slug}", response_class=HTMLResponse)
async def show_thread(
    slug: str, cache: CacheDep, repo: RepositoryDep, user: CurrentUser
) -> HTMLResponse:
    """A thread with all of its posts."""

    async def render() -> CachedPage:
        thread = await repo.get_thread(slug)
        return views.render_thread(thread, await repo.list_posts(slug))

    result = await cache.cache_read(
        CacheKeys.thread(slug), cache.ttls.threads, render, authenticated=user is not None
    )
    return page_response(result)


@router.get("/users/{username}", response_class=HTMLResponse)
async def show_profile(
    username: str, cache: CacheDep, repo: RepositoryDep, user: CurrentUser
) -> HTMLResponse:
    """A user's public profile."""

    async def render() -> CachedPage:
        return views.render_profile(await repo.get_user(username))

    result = await cache.cache_read(
        CacheKeys.user_profile(username),
        cache.ttls.user_profile,
        render,
        authenticated=user is not None,
    )
    return page_response(result)


@router.get("/search", response_class=HTMLResponse)
async def search(
    cache: CacheDep,
    repo: RepositoryDep,
    settings: SettingsDep,
    user: CurrentUser,
    q: Annotated[str, Query(min_length=1, max_length=200)],
    page: PageQuery = 1,
) -> HTMLResponse:
    """Search thread titles and post bodies. Keys use the raw query text."""

    async def render() -> CachedPage:
        results = await repo.search(q, page, settings.search_per_page)
        return views.render_search(q, results)

    result = await cache.cache_read(
        CacheKeys.search_results(q, page),
        cache.ttls.search_results,
        render,
        authenticated=user is not None,
    )
    return page_response(result)


# =============================================================================
# Writes
# =============================================================================


def _check_post_owner(post: Post, user: str, settings: Settings) -> None:
    if post.author != user and user not in settings.admin_usernames:
        raise ForbiddenError("Only the author or an administrator can change this post")


@router.post("/categories/{slug}/threads", status_code=201)
async def create_thread(
    slug: str, payload: ThreadCreate, cache: CacheDep, repo: RepositoryDep, user: RequiredUser
) -> dict[str, Any]:
    """Start a new thread in a category."""
    thread = await repo.create_thread(slug, user, payload.title, payload.body)
    cache.thread_created(slug)
    logger.info(f"Thread created: {thread.slug}", extra={"category": slug})
    return {"slug": thread.slug, "url": f"/threads/{thread.slug}"}


@router.post("/threads/{slug}/posts", status_code=201)
async def create_post(
    slug: str, payload: PostCreate, cache: CacheDep, repo: RepositoryDep, user: RequiredUser
) -> dict[str, Any]:
    """Reply to a thread."""
    post = await repo.create_post(slug, user, payload.body)
    thread = await repo.get_thread(slug)
    category = await repo.get_category_by_id(thread.category_id)
    cache.post_created(thread.slug, category.slug)
    return {"id": post.id, "url": f"/threads/{thread.slug}#post-{post.id}"}


@router.patch("/posts/{post_id}")
async def edit_post(
    post_id: int,
    payload: PostEdit,
    cache: CacheDep,
    repo: RepositoryDep,
    settings: SettingsDep,
    user: RequiredUser,
) -> dict[str, Any]:
    """Edit a post, including the first post of a thread."""
    _check_post_owner(await repo.get_post(post_id), user, settings)
    post = await repo.edit_post(post_id, payload.body)
    thread = await repo.get_thread_by_id(post.thread_id)
    cache.post_edited(thread.slug)
    return {"id": post.id, "edited": True}


@router.delete("/posts/{post_id}")
async def delete_post(
    post_id: int, cache: CacheDep, repo: RepositoryDep, settings: SettingsDep, user: RequiredUser
) -> dict[str, Any]:
    """Delete a reply. First posts go away only with their thread."""
    post = await repo.get_post(post_id)
    _check_post_owner(post, user, settings)
    if post.is_first:
        raise BadRequestError("Delete the thread instead of its first post")

    await repo.delete_post(post_id)
    thread = await repo.get_thread_by_id(post.thread_id)
    category = await repo.get_category_by_id(thread.category_id)
    cache.post_deleted(thread.slug, category.slug)
    return {"id": post_id, "deleted": True}


@router.delete("/threads/{slug}")
async def delete_thread(
    slug: str, cache: CacheDep, repo: RepositoryDep, settings: SettingsDep, user: RequiredUser
) -> dict[str, Any]:
    """Delete a thread and all of its posts."""
    thread = await repo.get_thread(slug)
    if thread.author != user and user not in settings.admin_usernames:
        raise ForbiddenError("Only the author or an administrator can delete this thread")

    category = await repo.get_category_by_id(thread.category_id)
    await repo.delete_thread(slug)
    cache.thread_deleted(slug, category.slug)
    logger.info(f"Thread deleted: {slug}", extra={"category": category.slug})
    return {"slug": slug, "deleted": True}


@router.patch("/users/{username}")
async def update_profile(
    username: str, payload: ProfileUpdate, cache: CacheDep, repo: RepositoryDep, user: RequiredUser
) -> dict[str, Any]:
    """Update the signed-in user's own profile."""
    if username != user:
        raise ForbiddenError("You can only edit your own profile")

    updated = await repo.update_user(username, payload.display_name, payload.bio)
    cache.user_updated(username)
    return {"username": updated.username, "display_name": updated.display_name}
