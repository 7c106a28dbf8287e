"""Error responses for the Agora API.

All API errors share one Result/Message envelope so clients can handle
failures uniformly.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import Enum

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from agora.persistence.memory import RecordNotFound

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    """Type of message in error response."""

    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"
    EXCEPTION = "Exception"


class Message(BaseModel):
    """A single error message."""

    model_config = {"extra": "forbid", "populate_by_name": True}

    code: str
    message_type: MessageType = Field(alias="messageType")
    text: str
    timestamp: str | None = None


class Result(BaseModel):
    """Result wrapper for errors."""

    model_config = {"extra": "forbid"}

    messages: list[Message]


class ForumApiError(HTTPException):
    """Base exception for forum API errors."""

    def __init__(
        self,
        status_code: int,
        code: str,
        text: str,
        message_type: MessageType = MessageType.ERROR,
    ):
        self.code = code
        self.text = text
        self.message_type = message_type
        super().__init__(status_code=status_code, detail=text)

    def to_result(self) -> Result:
        return Result(
            messages=[
                Message(
                    code=self.code,
                    messageType=self.message_type,
                    text=self.text,
                    timestamp=datetime.now(UTC).isoformat(),
                )
            ]
        )


class NotFoundError(ForumApiError):
    """Resource not found (404)."""

    def __init__(self, resource_type: str, identifier: str | int):
        super().__init__(
            status_code=404,
            code="NotFound",
            text=f"{resource_type} '{identifier}' not found",
        )


class BadRequestError(ForumApiError):
    """Invalid request (400)."""

    def __init__(self, text: str):
        super().__init__(status_code=400, code="BadRequest", text=text)


class UnauthorizedError(ForumApiError):
    """No signed-in user (401)."""

    def __init__(self) -> None:
        super().__init__(
            status_code=401,
            code="Unauthorized",
            text="You must be signed in to do that",
        )


class ForbiddenError(ForumApiError):
    """Signed-in user lacks the required role (403)."""

    def __init__(self, text: str = "You are not allowed to do that"):
        super().__init__(status_code=403, code="Forbidden", text=text)


async def forum_api_exception_handler(request: Request, exc: ForumApiError) -> JSONResponse:
    """Exception handler for forum API errors."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_result().model_dump(by_alias=True),
    )


async def record_not_found_handler(request: Request, exc: RecordNotFound) -> JSONResponse:
    """Map repository lookups that found nothing to 404 responses."""
    return await forum_api_exception_handler(
        request, NotFoundError(exc.record_type, exc.identifier)
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Exception handler for unexpected errors."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=Result(
            messages=[
                Message(
                    code="InternalServerError",
                    messageType=MessageType.EXCEPTION,
                    text="An unexpected error occurred",
                    timestamp=datetime.now(UTC).isoformat(),
                )
            ]
        ).model_dump(by_alias=True),
    )
