"""FastAPI application entry point with lifespan management.

Build: load settings, configure JSON logging, load the resource registry,
create one in-memory store and CRUD router per resource, wire middleware and
exception handlers.
Lifespan: periodically prune idle rate-limit buckets; cancel the pruning task
on shutdown.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.config.resources import load_resources
from src.config.settings import EnvelopeSettings
from src.logging_config import configure_logging
from src.middleware.auth import ServiceKeyAuthMiddleware
from src.middleware.error_handler import register_error_handlers
from src.middleware.rate_limit import RateLimitMiddleware
from src.middleware.request_id import RequestIdMiddleware
from src.resilience.rate_limiter import ClientRateLimiter
from src.routers.health import create_health_router
from src.routers.resources import create_resource_router
from src.services.resource_store import ResourceStore

logger = logging.getLogger(__name__)

_PRUNE_INTERVAL_SECONDS = 300


async def _prune_loop(limiter: ClientRateLimiter, idle_seconds: float) -> None:
    while True:
        await asyncio.sleep(_PRUNE_INTERVAL_SECONDS)
        pruned = limiter.prune(idle_seconds)
        if pruned:
            logger.debug("Pruned %d idle rate-limit buckets", pruned)


def create_app(settings: EnvelopeSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Loads ``EnvelopeSettings`` eagerly so that a missing
    ``ENVELOPE_SERVICE_KEY`` environment variable causes an immediate startup
    failure rather than silently running without authentication.
    """
    settings = settings or EnvelopeSettings()  # type: ignore[call-arg]
    configure_logging(settings.log_level)

    rate_limiter = ClientRateLimiter(
        tokens=settings.rate_limit_tokens,
        interval_seconds=settings.rate_limit_interval_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting envelope service on port %d", settings.port)
        prune_task = asyncio.create_task(
            _prune_loop(rate_limiter, idle_seconds=settings.rate_limit_interval_seconds * 2)
        )

        yield

        logger.info("Shutting down envelope service…")
        prune_task.cancel()
        try:
            await prune_task
        except asyncio.CancelledError:
            pass
        logger.info("Envelope service shut down")

    app = FastAPI(
        title="API Envelope Service",
        version="1.0.0",
        lifespan=lifespan,
    )

    register_error_handlers(app)

    # Resource stores and routers
    stores: dict[str, ResourceStore] = {}
    for name, config in load_resources(settings.resources_path).items():
        store = ResourceStore(config)
        stores[name] = store
        app.include_router(create_resource_router(store=store, settings=settings))
    logger.info("Mounted %d resources: %s", len(stores), ", ".join(sorted(stores)))

    app.include_router(create_health_router(stores=stores, rate_limiter=rate_limiter))

    # Middleware (order: request_id → rate limit → auth)
    # Note: Starlette middleware is applied in reverse order of add_middleware calls
    app.add_middleware(ServiceKeyAuthMiddleware, service_key=settings.service_key)
    app.add_middleware(RateLimitMiddleware, limiter=rate_limiter, service_key=settings.service_key)
    app.add_middleware(RequestIdMiddleware)

    app.state.settings = settings
    app.state.stores = stores
    app.state.rate_limiter = rate_limiter

    return app
