from __future__ import annotations

import enum
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorKind(enum.StrEnum):
    """Closed set of domain failure kinds surfaced to callers."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    AUTHORIZATION = "authorization"
    STATE = "state"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    CONFLICT = "conflict"
    TRANSIENT = "transient"
    INTERNAL = "internal"


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    kind: ErrorKind
    detail: str | None = None
    status_code: int


class AppError(Exception):
    """Base application exception."""

    kind: ErrorKind = ErrorKind.INTERNAL
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed input; nothing was changed."""

    kind = ErrorKind.VALIDATION
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(AppError):
    kind = ErrorKind.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND


class AuthorizationError(AppError):
    """The principal may not perform the action."""

    kind = ErrorKind.AUTHORIZATION
    status_code = status.HTTP_403_FORBIDDEN


class StateError(AppError):
    """Illegal transition from the request's current status."""

    kind = ErrorKind.STATE
    status_code = status.HTTP_400_BAD_REQUEST


class InsufficientBalanceError(AppError):
    kind = ErrorKind.INSUFFICIENT_BALANCE
    status_code = status.HTTP_409_CONFLICT


class ConflictError(AppError):
    kind = ErrorKind.CONFLICT
    status_code = status.HTTP_409_CONFLICT


class TransientError(AppError):
    """Persistence failure or timeout. Safe for the caller to retry."""

    kind = ErrorKind.TRANSIENT
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            kind=exc.kind,
            detail=exc.message,
            status_code=exc.status_code,
        ).model_dump(mode="json"),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="RequestValidationError",
            kind=ErrorKind.VALIDATION,
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(mode="json"),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="InternalServerError",
            kind=ErrorKind.INTERNAL,
            detail="Internal server error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        ).model_dump(mode="json"),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_exception_handler)
