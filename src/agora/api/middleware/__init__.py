"""Middleware for the Agora API.

- Request ID propagation
- Session identity from the auth proxy
- No-store headers for private pages
"""

from agora.api.middleware.correlation import CorrelationMiddleware
from agora.api.middleware.no_store import NoStoreMiddleware
from agora.api.middleware.session import SessionIdentityMiddleware

__all__ = [
    "CorrelationMiddleware",
    "NoStoreMiddleware",
    "SessionIdentityMiddleware",
]
