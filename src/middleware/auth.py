"""Service key authentication middleware.

Validates the ``X-Service-Key`` header (or an ``Authorization: Bearer`` token)
against the configured key from EnvelopeSettings. Health and documentation
endpoints are excluded from authentication.
"""

from __future__ import annotations

import hmac
import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from src.middleware.error_handler import AuthenticationError, error_envelope

logger = logging.getLogger(__name__)

# Paths that do NOT require authentication.
_PUBLIC_PATHS: set[str] = {"/health", "/readiness", "/docs", "/openapi.json"}


def presented_key(request: Request) -> str | None:
    key = request.headers.get("x-service-key")
    if key:
        return key
    authorization = request.headers.get("authorization", "")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() == "bearer" and token:
        return token.strip()
    return None


def key_matches(provided: str, expected: str) -> bool:
    """Constant-time comparison of a presented key against the configured one."""
    return hmac.compare_digest(provided.encode(), expected.encode())


class ServiceKeyAuthMiddleware(BaseHTTPMiddleware):
    """Starlette middleware that enforces service key authentication.

    Uses ``hmac.compare_digest`` so comparison time does not depend on how
    much of the key matched.
    """

    def __init__(self, app, service_key: str) -> None:  # noqa: ANN001
        super().__init__(app)
        self._service_key = service_key

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in _PUBLIC_PATHS:
            return await call_next(request)

        provided_key = presented_key(request)
        reason = None
        if not provided_key:
            reason = "missing_service_key"
        elif not key_matches(provided_key, self._service_key):
            reason = "invalid_service_key"

        if reason is not None:
            logger.warning(
                "Rejected unauthenticated request",
                extra={
                    "event": "auth_failure",
                    "reason": reason,
                    "source_ip": request.client.host if request.client else "unknown",
                    "path": request.url.path,
                    "request_id": getattr(request.state, "request_id", None),
                },
            )
            return error_envelope(AuthenticationError())

        return await call_next(request)
