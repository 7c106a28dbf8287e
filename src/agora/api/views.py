"""Minimal HTML rendering for forum pages.

Every renderer returns a ``CachedPage`` so the result can be stored by the
response cache as-is. All user content is escaped; markdown is not rendered.
"""

from __future__ import annotations

from html import escape
from urllib.parse import quote

from agora.cache import CachedPage
from agora.persistence.memory import Category, Page, Post, Thread, User


def _layout(title: str, body: str) -> CachedPage:
    html = (
        "<!DOCTYPE html>\n"
        f"<html><head><meta charset=\"utf-8\"><title>{escape(title)} - Agora</title></head>"
        f"<body><main>{body}</main></body></html>"
    )
    return CachedPage(body=html)


def _pager(base_url: str, page: Page[Thread]) -> str:
    links = []
    if page.page > 1:
        links.append(f'<a rel="prev" href="{base_url}page={page.page - 1}">Previous</a>')
    if page.has_next:
        links.append(f'<a rel="next" href="{base_url}page={page.page + 1}">Next</a>')
    return f'<nav class="pager">{" ".join(links)}</nav>' if links else ""


def _thread_row(thread: Thread) -> str:
    pin = '<span class="pinned">Pinned</span> ' if thread.pinned else ""
    return (
        f'<li>{pin}<a href="/threads/{escape(thread.slug)}">{escape(thread.title)}</a> '
        f"<small>by {escape(thread.author)}, {thread.post_count} posts</small></li>"
    )


def render_home(categories: list[Category]) -> CachedPage:
    rows = "".join(
        f'<li><a href="/categories/{escape(c.slug)}">{escape(c.name)}</a> '
        f"<small>{escape(c.description)} ({c.thread_count} threads, {c.post_count} posts)"
        "</small></li>"
        for c in categories
    )
    return _layout("Forums", f"<h1>Forums</h1><ul class=\"categories\">{rows}</ul>")


def render_category(category: Category, threads: Page[Thread]) -> CachedPage:
    rows = "".join(_thread_row(t) for t in threads.items) or "<li>No threads yet.</li>"
    pager = _pager(f"/categories/{escape(category.slug)}?", threads)
    return _layout(
        category.name,
        f"<h1>{escape(category.name)}</h1><ul class=\"threads\">{rows}</ul>{pager}",
    )


def render_thread(thread: Thread, posts: list[Post]) -> CachedPage:
    items = "".join(
        f'<article id="post-{p.id}"><header>{escape(p.author)}'
        f"{' (edited)' if p.edited_at else ''}</header><p>{escape(p.body)}</p></article>"
        for p in posts
    )
    return _layout(thread.title, f"<h1>{escape(thread.title)}</h1>{items}")


def render_profile(user: User) -> CachedPage:
    return _layout(
        user.display_name,
        f"<h1>{escape(user.display_name)}</h1><p class=\"bio\">{escape(user.bio)}</p>"
        f"<p>Member since {user.joined_at:%Y-%m-%d}</p>",
    )


def render_search(query: str, results: Page[Thread]) -> CachedPage:
    rows = "".join(_thread_row(t) for t in results.items) or "<li>No results.</li>"
    pager = _pager(f"/search?q={quote(query)}&", results)
    return _layout(
        f"Search: {query}",
        f"<h1>Results for &ldquo;{escape(query)}&rdquo;</h1><ul>{rows}</ul>{pager}",
    )
