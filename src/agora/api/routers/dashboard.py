"""Admin dashboard endpoint - forum activity at a glance.

Site totals are expensive to count on a real store, so they are read through
the response cache under ``admin:statistics`` and purged by every mutation
that changes a count.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from agora.api.deps import CacheDep, RepositoryDep, require_admin
from agora.cache import CacheKeys

router = APIRouter(
    prefix="/admin",
    tags=["Admin - Dashboard"],
    dependencies=[Depends(require_admin)],
)


class SiteStatistics(BaseModel):
    """Record totals and activity over the last seven days."""

    users: int
    categories: int
    threads: int
    posts: int
    new_users: int
    new_threads: int
    new_posts: int


@router.get("/statistics", response_model=SiteStatistics)
async def get_site_statistics(
    cache: CacheDep,
    repo: RepositoryDep,
    refresh: bool = Query(default=False, description="Recount instead of using the cache"),
) -> SiteStatistics:
    """Site totals, cached for ``cache_ttl_statistics`` seconds."""
    if refresh:
        cache.invalidate_statistics()

    async def count() -> dict[str, int]:
        return await repo.site_statistics()

    # Same counts for every administrator, so the admin session does not bypass
    counts = await cache.cache_read(
        CacheKeys.statistics(), cache.ttls.statistics, count, is_cacheable=bool
    )
    return SiteStatistics(**counts)
