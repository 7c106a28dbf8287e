"""API routers for Agora."""

from agora.api.routers import admin, dashboard, forum, health

__all__ = ["admin", "dashboard", "forum", "health"]
