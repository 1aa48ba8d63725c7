"""Middleware package: error hierarchy, auth, rate limiting and request ID."""

from src.middleware.auth import ServiceKeyAuthMiddleware
from src.middleware.error_handler import (
    ApiError,
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    InternalError,
    InvalidIdError,
    NotFoundError,
    RateLimitExceededError,
    ServiceUnavailableError,
    ValidationError,
    error_envelope,
    unhandled_error_envelope,
    register_error_handlers,
)
from src.middleware.rate_limit import RateLimitMiddleware
from src.middleware.request_id import RequestIdMiddleware

__all__ = [
    "ApiError",
    "AuthenticationError",
    "ConflictError",
    "ForbiddenError",
    "InternalError",
    "InvalidIdError",
    "NotFoundError",
    "RateLimitExceededError",
    "RateLimitMiddleware",
    "RequestIdMiddleware",
    "ServiceKeyAuthMiddleware",
    "ServiceUnavailableError",
    "ValidationError",
    "error_envelope",
    "register_error_handlers",
    "unhandled_error_envelope",
]
