"""Request ID and access-log middleware.

Generates (or propagates) a request ID for every incoming request, stores it in
``request.state.request_id``, adds an ``X-Request-ID`` response header and
emits one structured access-log entry per request. Unhandled exceptions are
rendered as the generic 500 envelope here so that response is tagged too.
"""

from __future__ import annotations

import logging
import re
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from src.middleware.error_handler import unhandled_error_envelope

logger = logging.getLogger("src.access")

# Caller-supplied IDs are echoed back in headers and logs.
_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,128}$")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Starlette middleware that assigns a unique request ID to each request.

    If the incoming request carries a well-formed ``X-Request-ID`` header the
    provided value is reused; otherwise a new UUID4 is generated.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        provided = request.headers.get("x-request-id")
        if provided and _SAFE_REQUEST_ID.match(provided):
            request_id = provided
        else:
            request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        start = time.perf_counter()
        try:
            response: Response = await call_next(request)
        except Exception as exc:
            # Rendered here so the 500 envelope still carries X-Request-ID.
            response = unhandled_error_envelope(exc)

        logger.info(
            "%s %s -> %d",
            request.method,
            request.url.path,
            response.status_code,
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - start) * 1000.0, 2),
            },
        )

        response.headers["X-Request-ID"] = request_id
        return response
