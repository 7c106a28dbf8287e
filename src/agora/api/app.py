"""FastAPI application factory for Agora.

Creates the application with:
- Forum pages served through the read-through response cache
- Write endpoints that invalidate stale cached pages
- Admin cache dashboard and site statistics endpoints
- Lifecycle management for the cache sweeper
- Request ID and session identity propagation to logs
- ORJSON for fast JSON serialization
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse
from starlette.types import ExceptionHandler

from agora.api.errors import (
    ForumApiError,
    forum_api_exception_handler,
    generic_exception_handler,
    record_not_found_handler,
)
from agora.api.middleware import (
    CorrelationMiddleware,
    NoStoreMiddleware,
    SessionIdentityMiddleware,
)
from agora.api.routers import admin, dashboard, forum, health
from agora.cache import CacheService
from agora.config import Settings
from agora.config import settings as default_settings
from agora.observability import configure_logging
from agora.persistence.memory import InMemoryForumRepository, RecordNotFound, seed_demo_data

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    On startup:
    - Configure structured logging
    - Seed demo data (if enabled)
    - Start the cache expiry sweeper

    On shutdown:
    - Stop the cache expiry sweeper
    """
    settings: Settings = app.state.settings
    configure_logging(
        json_format=settings.env != "dev",
        level=settings.log_level,
    )

    logger.info(f"Starting Agora ({settings.env})")
    if settings.seed_demo:
        await seed_demo_data(app.state.repository)
        logger.info("Seeded demo forum data")

    cache: CacheService = app.state.cache
    await cache.start()
    logger.info("Agora startup complete")

    yield

    logger.info("Shutting down Agora")
    await cache.stop()
    logger.info("Agora shutdown complete")


def create_app(
    settings: Settings | None = None,
    repository: InMemoryForumRepository | None = None,
    cache: CacheService | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The cache and repository are constructed once here and shared by every
    request through ``app.state``.
    """
    settings = settings or default_settings

    app = FastAPI(
        title="Agora",
        description="Server-rendered discussion forum",
        version="0.1.0",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.repository = repository or InMemoryForumRepository()
    app.state.cache = cache or CacheService.from_settings(settings)

    # Order: Correlation (outer) -> Session identity -> No-store headers (inner)
    app.add_middleware(NoStoreMiddleware, path_prefixes=settings.no_store_prefixes)
    app.add_middleware(SessionIdentityMiddleware)
    app.add_middleware(CorrelationMiddleware)

    app.add_exception_handler(ForumApiError, cast(ExceptionHandler, forum_api_exception_handler))
    app.add_exception_handler(RecordNotFound, cast(ExceptionHandler, record_not_found_handler))
    app.add_exception_handler(Exception, cast(ExceptionHandler, generic_exception_handler))

    app.include_router(health.router)
    app.include_router(admin.router)
    app.include_router(dashboard.router)
    app.include_router(forum.router)

    return app
