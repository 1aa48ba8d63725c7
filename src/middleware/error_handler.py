"""Global error hierarchy and FastAPI exception handlers.

All service errors extend ApiError. The FastAPI exception handlers catch these
errors (plus request validation errors, Starlette HTTP exceptions and unhandled
exceptions) and return the error envelope:
{ success: false, error: true, message, code, details?, errors? }.
"""

from __future__ import annotations

import logging
import traceback
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.models.responses import error_response

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Error hierarchy
# ---------------------------------------------------------------------------


class ApiError(Exception):
    """Base error for everything the API reports to clients."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    message: str = "Internal server error"
    message_ar: str | None = None

    def __init__(
        self,
        message: str | None = None,
        *,
        message_en: str | None = None,
        message_ar: str | None = None,
        **kwargs: Any,
    ) -> None:
        self.message = message or self.__class__.message
        self.message_en = message_en
        self.message_ar = message_ar or self.__class__.message_ar
        self.details = kwargs
        super().__init__(self.message)


class ValidationError(ApiError):
    """Payload or query validation failures."""

    status_code = 400
    code = "VALIDATION_ERROR"
    message = "Validation error"


class InvalidIdError(ApiError):
    """Malformed ``:id`` parameter."""

    status_code = 400
    code = "INVALID_ID"
    message = "Invalid ID format"
    message_ar = "صيغة المعرف غير صالحة"


class AuthenticationError(ApiError):
    """Invalid or missing service key."""

    status_code = 401
    code = "UNAUTHORIZED"
    message = "Invalid or missing service key"


class ForbiddenError(ApiError):
    status_code = 403
    code = "FORBIDDEN"
    message = "Access denied"


class NotFoundError(ApiError):
    """Resource not found."""

    status_code = 404
    code = "NOT_FOUND"
    message = "Resource not found"
    message_ar = "لم يتم العثور على السجل"


class ConflictError(ApiError):
    status_code = 409
    code = "CONFLICT"
    message = "Resource conflict"


class RateLimitExceededError(ApiError):
    """Client exceeded its request budget."""

    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"
    message = "Too many requests, please try again later"


class InternalError(ApiError):
    status_code = 500
    code = "INTERNAL_ERROR"
    message = "Internal server error"


class ServiceUnavailableError(ApiError):
    """Service is up but not ready to serve traffic."""

    status_code = 503
    code = "SERVICE_UNAVAILABLE"
    message = "Service not ready"


_HTTP_STATUS_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    429: "RATE_LIMIT_EXCEEDED",
    503: "SERVICE_UNAVAILABLE",
}


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------


def _envelope(
    status_code: int,
    message: str,
    *,
    code: str | None = None,
    details: list[Any] | None = None,
    errors: list[str] | None = None,
    message_en: str | None = None,
    message_ar: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build a JSON error envelope response."""
    body = error_response(
        message,
        code=code,
        details=details,
        errors=errors,
        message_en=message_en,
        message_ar=message_ar,
    )
    return JSONResponse(status_code=status_code, content=body.to_wire(), headers=headers)


def error_envelope(exc: ApiError, headers: dict[str, str] | None = None) -> JSONResponse:
    """Render an ApiError; keyword details become a one-element ``details`` list."""
    details = [exc.details] if exc.details else None
    return _envelope(
        exc.status_code,
        exc.message,
        code=exc.code,
        details=details,
        message_en=exc.message_en,
        message_ar=exc.message_ar,
        headers=headers,
    )


async def _api_error_handler(_request: Request, exc: ApiError) -> JSONResponse:
    """Handle ApiError subclasses."""
    return error_envelope(exc)


async def _validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle FastAPI / Pydantic RequestValidationError (400)."""
    field_errors = [
        {
            "field": " -> ".join(str(loc) for loc in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    return _envelope(
        status_code=ValidationError.status_code,
        message=ValidationError.message,
        code=ValidationError.code,
        details=field_errors,
        errors=[f"{item['field']}: {item['message']}" for item in field_errors],
    )


async def _http_exception_handler(
    _request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Routing-level HTTP errors (unknown path, wrong method)."""
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _envelope(
        status_code=exc.status_code,
        message=message,
        code=_HTTP_STATUS_CODES.get(exc.status_code, "HTTP_ERROR"),
        headers=getattr(exc, "headers", None),
    )


def unhandled_error_envelope(exc: Exception) -> JSONResponse:
    """Log the traceback of an unexpected exception and render a generic 500.

    Must be called from inside the ``except`` block that caught ``exc``.
    """
    logger.error(
        "Unhandled exception: %s\n%s",
        exc,
        traceback.format_exc(),
    )
    return _envelope(
        status_code=InternalError.status_code,
        message=InternalError.message,
        code=InternalError.code,
    )


async def _unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions. Logs the traceback and returns a generic 500."""
    return unhandled_error_envelope(exc)


# ---------------------------------------------------------------------------
# Registration helper
# ---------------------------------------------------------------------------


def register_error_handlers(app: FastAPI) -> None:
    """Wire up all exception handlers on the FastAPI application."""
    app.add_exception_handler(ApiError, _api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error_handler)  # type: ignore[arg-type]
