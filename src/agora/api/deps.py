"""Shared FastAPI dependencies for Agora routers.

Process-wide services (cache, repository, settings) are created once in the
application factory and stored on ``app.state``; these dependencies hand them
to route handlers.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Query, Request

from agora.api.errors import ForbiddenError, UnauthorizedError
from agora.cache import CacheService
from agora.config import Settings
from agora.persistence.memory import InMemoryForumRepository

# =============================================================================
# Application services
# =============================================================================


def get_cache(request: Request) -> CacheService:
    """The process-wide response cache."""
    return request.app.state.cache  # type: ignore[no-any-return]


def get_repository(request: Request) -> InMemoryForumRepository:
    """The forum record store."""
    return request.app.state.repository  # type: ignore[no-any-return]


def get_settings(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[no-any-return]


# =============================================================================
# Session identity
# =============================================================================


def current_user(request: Request) -> str | None:
    """Username of the signed-in user, or None for anonymous requests."""
    return getattr(request.state, "user_id", None)


def require_user(user: Annotated[str | None, Depends(current_user)]) -> str:
    """Reject anonymous requests with 401."""
    if user is None:
        raise UnauthorizedError()
    return user


def require_admin(
    user: Annotated[str, Depends(require_user)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> str:
    """Reject users not listed in ``admin_usernames`` with 403."""
    if user not in settings.admin_usernames:
        raise ForbiddenError("Administrator access required")
    return user


# Type aliases for cleaner router signatures
CacheDep = Annotated[CacheService, Depends(get_cache)]
RepositoryDep = Annotated[InMemoryForumRepository, Depends(get_repository)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
CurrentUser = Annotated[str | None, Depends(current_user)]
RequiredUser = Annotated[str, Depends(require_user)]
PageQuery = Annotated[int, Query(ge=1, description="1-based page number")]
