"""Session identity middleware.

Authentication happens upstream: the auth proxy verifies the session and
forwards the signed-in username in a trusted header. This middleware only
exposes that identity to route handlers and log records. Anonymous requests
carry no header and get ``request.state.user_id = None``.
"""

from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from agora.observability.logging import user_id_var

SESSION_USER_HEADER = "x-forum-user"


class SessionIdentityMiddleware(BaseHTTPMiddleware):
    """Resolve the session user from the trusted identity header."""

    def __init__(self, app: ASGIApp, header_name: str = SESSION_USER_HEADER) -> None:
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        user_id = (request.headers.get(self.header_name) or "").strip() or None
        request.state.user_id = user_id

        token = user_id_var.set(user_id or "")
        try:
            return await call_next(request)
        finally:
            user_id_var.reset(token)
