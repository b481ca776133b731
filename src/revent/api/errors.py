"""Error responses for the revent API.

Every error leaves the API as a Result/Message body:

    {"messages": [{"code": "NotFound", "messageType": "Error",
                   "text": "...", "timestamp": "..."}]}

Domain errors from the cache, scheduler and change layers are mapped to
status codes here so routers can let them propagate.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import Enum

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from revent.errors import (
    EntityNotFound,
    OriginNotFound,
    OriginUnavailable,
    ReventError,
    UnknownCollection,
)

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    """Type of message in error response."""

    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"
    EXCEPTION = "Exception"


class Message(BaseModel):
    model_config = {"extra": "forbid", "populate_by_name": True}

    code: str
    message_type: MessageType = Field(alias="messageType")
    text: str
    timestamp: str | None = None


class Result(BaseModel):
    model_config = {"extra": "forbid"}

    messages: list[Message]


def _result(code: str, text: str, message_type: MessageType = MessageType.ERROR) -> dict:
    return Result(
        messages=[
            Message(
                code=code,
                messageType=message_type,
                text=text,
                timestamp=datetime.now(UTC).isoformat(),
            )
        ]
    ).model_dump(by_alias=True)


class ApiError(HTTPException):
    """Base exception for errors raised by routers."""

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


class BadRequestError(ApiError):
    """Invalid request (400)."""

    def __init__(self, text: str):
        super().__init__(status_code=400, code="BadRequest", text=text)


def status_for(exc: ReventError) -> tuple[int, str]:
    """HTTP status and message code for a domain error."""
    if isinstance(exc, (OriginNotFound, EntityNotFound, UnknownCollection)):
        return 404, "NotFound"
    if isinstance(exc, OriginUnavailable):
        if exc.status_code == 403:
            return 403, "Forbidden"
        return 502, "BadGateway"
    return 500, "InternalServerError"


async def api_exception_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Exception handler for router errors."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_result(exc.code, exc.text, exc.message_type),
    )


async def domain_exception_handler(request: Request, exc: ReventError) -> JSONResponse:
    """Exception handler for domain errors."""
    status_code, code = status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        message_type = MessageType.EXCEPTION if status_code == 500 else MessageType.ERROR
    else:
        message_type = MessageType.ERROR
    return JSONResponse(status_code=status_code, content=_result(code, str(exc), message_type))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Exception handler for unexpected errors."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=_result(
            "InternalServerError", "An unexpected error occurred", MessageType.EXCEPTION
        ),
    )
