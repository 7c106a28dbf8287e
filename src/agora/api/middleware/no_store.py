"""HTTP no-store headers for pages that must never be cached downstream.

Admin pages and write endpoints carry per-user state; browsers, proxies and
CDNs are told not to keep copies of them.
"""

from __future__ import annotations

from typing import Sequence

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
    "Surrogate-Control": "no-store",
}


class NoStoreMiddleware(BaseHTTPMiddleware):
    """Add no-store headers to configured paths and to every non-GET response."""

    def __init__(self, app: ASGIApp, path_prefixes: Sequence[str] = ("/admin",)) -> None:
        super().__init__(app)
        self.path_prefixes = tuple(path_prefixes)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)

        if request.method != "GET" or request.url.path.startswith(self.path_prefixes):
            response.headers.update(NO_STORE_HEADERS)

        return response
