"""Cache key schema for Agora.

Key format: {namespace}:{identity...}[:{variant}]

Namespaces:
- categories: "categories:all" (single global entry)
- category threads: "category:{slug}:threads:page:{n}"
- thread: "thread:{slug}"
- user profile: "user:{username}:profile"
- search results: "search:{query}:page:{n}"
- admin statistics: "admin:statistics"

Search keys embed the raw query string, so "Foo" and "foo" are distinct entries.
"""

from __future__ import annotations


class CacheKeys:
    """Cache key generator following consistent naming convention."""

    WILDCARD = "*"

    @classmethod
    def categories(cls) -> str:
        """Key for the home page category listing."""
        return "categories:all"

    @classmethod
    def category_threads(cls, slug: str, page: int = 1) -> str:
        """Key for one page of a category's thread listing."""
        return f"category:{slug}:threads:page:{page}"

    @classmethod
    def thread(cls, slug: str) -> str:
        """Key for a rendered thread."""
        return f"thread:{slug}"

    @classmethod
    def user_profile(cls, username: str) -> str:
        """Key for a user's public profile."""
        return f"user:{username}:profile"

    @classmethod
    def search_results(cls, query: str, page: int = 1) -> str:
        """Key for one page of search results."""
        return f"search:{query}:page:{page}"

    @classmethod
    def statistics(cls) -> str:
        """Key for the admin dashboard counters."""
        return "admin:statistics"

    @classmethod
    def category_threads_prefix(cls, category: str) -> str:
        """Prefix shared by every paginated listing of a category.

        Only meant for bulk invalidation, never for lookups. Matched literally,
        so a "*" in a slug never widens the purge.
        """
        return f"category:{category}:threads:"

    @classmethod
    def search_pattern(cls) -> str:
        """Pattern matching every cached search page."""
        return f"search:{cls.WILDCARD}"

    @classmethod
    def parse_key(cls, key: str) -> dict[str, str] | None:
        """Parse a cache key into its components.

        Returns None if the key doesn't belong to a known namespace.
        """
        parts = key.split(":")
        namespace = parts[0]

        if key == cls.categories():
            return {"namespace": "categories", "identity": "all"}
        if key == cls.statistics():
            return {"namespace": "admin", "identity": "statistics"}

        if namespace == "thread" and len(parts) >= 2:
            return {"namespace": "thread", "identity": key[len("thread:") :]}

        if namespace == "category" and len(parts) >= 5 and parts[-3:-1] == ["threads", "page"]:
            return {
                "namespace": "category",
                "identity": ":".join(parts[1:-3]),
                "page": parts[-1],
            }

        if namespace == "search" and len(parts) >= 4 and parts[-2] == "page":
            return {
                "namespace": "search",
                "identity": ":".join(parts[1:-2]),
                "page": parts[-1],
            }

        if namespace == "user" and len(parts) >= 3 and parts[-1] == "profile":
            return {
                "namespace": "user",
                "identity": ":".join(parts[1:-1]),
                "variant": parts[-1],
            }

        return None
