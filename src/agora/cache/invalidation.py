"""Typed cache invalidation for forum mutations.

Invalidation targets are explicit requests rather than ad hoc regexes built at
call sites:

- exact: a single key
- prefix: every key starting with the target
- glob: fixed segments match literally, ``*`` matches any substring

Requests are resolved against the live key set at invalidation time, so
paginated keys created since the last purge are always included.

Each forum mutation maps to a fixed set of targets through
``INVALIDATION_POLICY``:

    thread created  -> category listings, categories, search, statistics
    post created    -> thread, category listings, search, statistics
    post edited     -> thread, search
    post deleted    -> thread, category listings, search, statistics
    thread deleted  -> thread, category listings, categories, search, statistics
    user updated    -> user profile
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from agora.cache.keys import CacheKeys


class InvalidationError(Exception):
    """An invalidation request could not be compiled or applied."""


class InvalidationKind(str, Enum):
    """How an invalidation target selects keys."""

    EXACT = "exact"
    PREFIX = "prefix"
    GLOB = "glob"


@dataclass(frozen=True)
class InvalidationRequest:
    """A single cache invalidation target."""

    kind: InvalidationKind
    target: str

    @classmethod
    def exact(cls, key: str) -> "InvalidationRequest":
        return cls(InvalidationKind.EXACT, key)

    @classmethod
    def prefix(cls, prefix: str) -> "InvalidationRequest":
        return cls(InvalidationKind.PREFIX, prefix)

    @classmethod
    def glob(cls, pattern: str) -> "InvalidationRequest":
        return cls(InvalidationKind.GLOB, pattern)

    @classmethod
    def from_pattern(cls, pattern: str) -> "InvalidationRequest":
        """Glob if the pattern contains a wildcard, exact otherwise."""
        if CacheKeys.WILDCARD in pattern:
            return cls.glob(pattern)
        return cls.exact(pattern)

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "target": self.target}


KeyMatcher = Callable[[str], bool]


def _glob_regex(pattern: str) -> re.Pattern[str]:
    segments = pattern.split(CacheKeys.WILDCARD)
    return re.compile(".*".join(re.escape(segment) for segment in segments), re.DOTALL)


def compile_matcher(request: InvalidationRequest) -> KeyMatcher:
    """Build a key predicate for an invalidation request.

    Raises:
        InvalidationError: If the request target is empty or the kind unknown
    """
    target = request.target
    if not target:
        raise InvalidationError(f"Empty {request.kind.value} invalidation target")

    if request.kind is InvalidationKind.EXACT:
        return lambda key: key == target

    if request.kind is InvalidationKind.PREFIX:
        return lambda key: key.startswith(target)

    if request.kind is InvalidationKind.GLOB:
        if CacheKeys.WILDCARD not in target:
            return lambda key: key == target
        regex = _glob_regex(target)
        return lambda key: regex.fullmatch(key) is not None

    raise InvalidationError(f"Unknown invalidation kind: {request.kind!r}")


def resolve(request: InvalidationRequest, keys: Iterable[str]) -> list[str]:
    """Return the keys in ``keys`` selected by ``request``."""
    matcher = compile_matcher(request)
    return [key for key in keys if matcher(key)]


# =============================================================================
# Mutation policy
# =============================================================================


class MutationKind(str, Enum):
    """Forum write operations that can leave cached pages stale."""

    THREAD_CREATED = "thread_created"
    POST_CREATED = "post_created"
    POST_EDITED = "post_edited"
    POST_DELETED = "post_deleted"
    THREAD_DELETED = "thread_deleted"
    USER_UPDATED = "user_updated"


class Target(str, Enum):
    """Cache resources named by the mutation policy."""

    THREAD = "thread"
    CATEGORY_THREADS = "category_threads"
    CATEGORIES = "categories"
    SEARCH = "search"
    USER_PROFILE = "user_profile"
    STATISTICS = "statistics"


INVALIDATION_POLICY: dict[MutationKind, tuple[Target, ...]] = {
    MutationKind.THREAD_CREATED: (
        Target.CATEGORY_THREADS,
        Target.CATEGORIES,
        Target.SEARCH,
        Target.STATISTICS,
    ),
    MutationKind.POST_CREATED: (
        Target.THREAD,
        Target.CATEGORY_THREADS,
        Target.SEARCH,
        Target.STATISTICS,
    ),
    MutationKind.POST_EDITED: (Target.THREAD, Target.SEARCH),
    MutationKind.POST_DELETED: (
        Target.THREAD,
        Target.CATEGORY_THREADS,
        Target.SEARCH,
        Target.STATISTICS,
    ),
    MutationKind.THREAD_DELETED: (
        Target.THREAD,
        Target.CATEGORY_THREADS,
        Target.CATEGORIES,
        Target.SEARCH,
        Target.STATISTICS,
    ),
    MutationKind.USER_UPDATED: (Target.USER_PROFILE,),
}


@dataclass(frozen=True)
class Mutation:
    """A committed forum write and the identifiers it touched."""

    kind: MutationKind
    thread: str | None = None
    category: str | None = None
    username: str | None = None


def requests_for(mutation: Mutation) -> list[InvalidationRequest]:
    """Translate a mutation into invalidation requests via the policy table.

    Raises:
        InvalidationError: If the mutation lacks an identifier its policy needs
    """
    requests: list[InvalidationRequest] = []
    for target in INVALIDATION_POLICY[mutation.kind]:
        if target is Target.THREAD:
            thread = _require(mutation, "thread")
            requests.append(InvalidationRequest.exact(CacheKeys.thread(thread)))
        elif target is Target.CATEGORY_THREADS:
            prefix = CacheKeys.category_threads_prefix(_require(mutation, "category"))
            requests.append(InvalidationRequest.prefix(prefix))
        elif target is Target.CATEGORIES:
            requests.append(InvalidationRequest.exact(CacheKeys.categories()))
        elif target is Target.SEARCH:
            requests.append(InvalidationRequest.glob(CacheKeys.search_pattern()))
        elif target is Target.USER_PROFILE:
            username = _require(mutation, "username")
            requests.append(InvalidationRequest.exact(CacheKeys.user_profile(username)))
        elif target is Target.STATISTICS:
            requests.append(InvalidationRequest.exact(CacheKeys.statistics()))
    return requests


def _require(mutation: Mutation, attr: str) -> str:
    value = getattr(mutation, attr)
    if not value:
        raise InvalidationError(f"{mutation.kind.value} mutation is missing '{attr}'")
    return str(value)
