"""Observability for Agora: structured logging with request context."""

from agora.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    configure_logging,
    request_id_var,
    user_id_var,
)

__all__ = [
    "ConsoleFormatter",
    "JsonFormatter",
    "configure_logging",
    "request_id_var",
    "user_id_var",
]
