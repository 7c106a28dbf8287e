"""Health check endpoints for Agora.

- /health/live  - Liveness probe (always OK if the process is running)
- /health/ready - Readiness probe (cache sweeper running, repository reachable)
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from agora.api.deps import CacheDep, RepositoryDep

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/ready")
async def readiness(cache: CacheDep, repo: RepositoryDep) -> JSONResponse:
    """Report whether the cache and repository are usable."""
    checks: dict[str, Any] = {
        "cache": "healthy" if cache.sweeper_running else "degraded",
        "repository": "healthy",
    }
    try:
        await repo.list_categories()
    except Exception as e:
        checks["repository"] = f"unhealthy: {e}"

    ready = checks["repository"] == "healthy"
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "not_ready", "checks": checks},
    )
