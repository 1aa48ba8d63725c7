"""Rate limiting middleware.

Spends one token per request from the caller's bucket and answers with a 429
error envelope plus ``Retry-After`` when the bucket is empty.

Only a verified service key (``X-Service-Key`` or Bearer) earns a key bucket;
missing or wrong keys are anonymous and share their source IP's bucket, so
rotating guessed keys never buys extra requests.
"""

from __future__ import annotations

import hashlib
import math

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from src.middleware.auth import key_matches, presented_key
from src.middleware.error_handler import RateLimitExceededError, error_envelope
from src.resilience.rate_limiter import ClientRateLimiter

_EXEMPT_PATHS: set[str] = {"/health", "/readiness"}


def client_key(request: Request, service_key: str | None = None) -> str:
    """Identify the caller: hashed service key once verified, else source IP."""
    key = presented_key(request)
    if key and service_key and key_matches(key, service_key):
        return "key:" + hashlib.sha256(key.encode()).hexdigest()[:16]
    return "ip:" + (request.client.host if request.client else "unknown")


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: ClientRateLimiter, service_key: str | None = None) -> None:  # noqa: ANN001
        super().__init__(app)
        self._limiter = limiter
        self._service_key = service_key

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        wait_time = self._limiter.try_acquire(client_key(request, self._service_key))
        if wait_time > 0:
            retry_after = max(1, math.ceil(wait_time))
            return error_envelope(
                RateLimitExceededError(retry_after=retry_after),
                headers={"Retry-After": str(retry_after)},
            )

        return await call_next(request)
