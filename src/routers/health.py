"""Health and readiness endpoints.

These endpoints do NOT require service key authentication.
- GET /health: service status + per-resource record counts
- GET /readiness: 200 only when at least one resource is mounted, otherwise
  a 503 SERVICE_UNAVAILABLE error envelope
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from src.middleware.error_handler import ServiceUnavailableError, error_envelope
from src.models.responses import success_response

if TYPE_CHECKING:
    from src.resilience.rate_limiter import ClientRateLimiter
    from src.services.resource_store import ResourceStore


def create_health_router(
    *,
    stores: dict[str, ResourceStore] | None = None,
    rate_limiter: ClientRateLimiter | None = None,
) -> APIRouter:
    """Factory that creates the health router with injected dependencies."""

    health_router = APIRouter(tags=["health"])
    _stores = stores if stores is not None else {}

    @health_router.get("/health")
    async def health() -> dict:
        """Service health check with resource statistics."""
        data: dict[str, Any] = {
            "status": "healthy",
            "resources": {name: len(store) for name, store in _stores.items()},
        }
        if rate_limiter is not None:
            data["rate_limiter"] = rate_limiter.get_stats()
        return success_response(data).to_wire()

    @health_router.get("/readiness", response_model=None)
    async def readiness() -> dict | JSONResponse:
        """Readiness probe, 200 iff at least one resource router is mounted."""
        if not _stores:
            return error_envelope(ServiceUnavailableError(ready=False, resources=[]))
        return success_response({"ready": True, "resources": sorted(_stores)}).to_wire()

    return health_router
