"""Admin cache endpoints - response cache visibility and control.

Provides:
- Hit/miss/set/delete counters and hit rate
- Key browsing with remaining TTL
- Pattern-based invalidation
- Statistics reset and full flush
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from agora.api.deps import CacheDep, require_admin
from agora.api.errors import BadRequestError
from agora.cache import CacheKeys

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/cache",
    tags=["Admin - Cache"],
    dependencies=[Depends(require_admin)],
)

_MAX_PATTERN_LENGTH = 256


def _validate_pattern(pattern: str) -> str:
    """Validate and normalize an invalidation pattern.

    A bare ``*`` is rejected; use the flush endpoint to clear everything.
    """
    cleaned = pattern.strip()
    if not cleaned:
        raise BadRequestError("Pattern must not be empty")
    if len(cleaned) > _MAX_PATTERN_LENGTH:
        raise BadRequestError("Pattern is too long")
    if not cleaned.strip("*"):
        raise BadRequestError("Pattern must contain a fixed segment; use /flush instead")
    return cleaned


class CacheStats(BaseModel):
    """Response cache statistics."""

    timestamp: datetime
    hits: int
    misses: int
    sets: int
    deletes: int
    hit_rate: float
    key_count: int


class CacheKey(BaseModel):
    """Information about a cached key."""

    key: str
    namespace: str | None  # None = unrecognised key
    ttl: float | None  # None = expired, awaiting sweep


class InvalidationResult(BaseModel):
    """Result of a cache invalidation operation."""

    pattern: str
    deleted_count: int
    timestamp: datetime


@router.get("/stats", response_model=CacheStats)
async def get_cache_stats(cache: CacheDep) -> CacheStats:
    """Current counters, hit rate and live key count."""
    return CacheStats(timestamp=datetime.now(UTC), **cache.get_statistics())


@router.post("/stats/reset", response_model=CacheStats)
async def reset_cache_stats(cache: CacheDep) -> CacheStats:
    """Zero the counters. Cached entries are kept."""
    cache.reset_statistics()
    return CacheStats(timestamp=datetime.now(UTC), **cache.get_statistics())


@router.get("/keys", response_model=list[CacheKey])
async def list_cache_keys(
    cache: CacheDep,
    prefix: str = Query(default="", description="Only keys starting with this prefix"),
    limit: int = Query(default=100, ge=1, le=1000, description="Maximum keys to return"),
) -> list[CacheKey]:
    """List cached keys with their remaining TTL."""
    keys = sorted(key for key in cache.keys() if key.startswith(prefix))
    items = []
    for key in keys[:limit]:
        parsed = CacheKeys.parse_key(key)
        items.append(
            CacheKey(
                key=key,
                namespace=parsed["namespace"] if parsed else None,
                ttl=cache.store.ttl(key),
            )
        )
    return items


@router.delete("/invalidate", response_model=InvalidationResult)
async def invalidate_cache(
    cache: CacheDep,
    pattern: str = Query(..., description="Key or pattern to invalidate (e.g. 'search:*')"),
) -> InvalidationResult:
    """Invalidate cache keys matching a key or ``*`` pattern."""
    pattern = _validate_pattern(pattern)
    deleted = cache.invalidate_pattern(pattern)
    logger.info(f"Admin invalidated {deleted} keys matching {pattern}")

    return InvalidationResult(
        pattern=pattern,
        deleted_count=deleted,
        timestamp=datetime.now(UTC),
    )


@router.delete("/flush", response_model=InvalidationResult)
async def flush_cache(cache: CacheDep) -> InvalidationResult:
    """Drop every cached entry. Statistics are kept."""
    deleted = cache.store.size()
    cache.flush_all()
    return InvalidationResult(pattern="*", deleted_count=deleted, timestamp=datetime.now(UTC))
