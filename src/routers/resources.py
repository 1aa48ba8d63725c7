"""Generic CRUD endpoints for a configured resource.

- GET    /api/{resource}             : paginated list (page, limit, search, sort, startDate, endDate, filters)
- GET    /api/{resource}/{id}        : single record
- POST   /api/{resource}             : create (body filtered by ALLOWED_FIELDS)
- PUT    /api/{resource}/{id}        : update (body filtered by ALLOWED_UPDATE_FIELDS)
- DELETE /api/{resource}/{id}        : delete, answers { deleted: true }
- POST   /api/{resource}/bulk-delete : delete many ids
- POST   /api/{resource}/bulk-update : apply one patch to many ids
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Request
from pydantic import ValidationError as PydanticValidationError

from src.config.settings import EnvelopeSettings
from src.middleware.error_handler import ValidationError
from src.models.requests import (
    BulkDeleteRequest,
    BulkUpdateRequest,
    DateRangeParams,
    SearchParams,
    sanitize_pagination,
)
from src.models.responses import paginated_response, success_response
from src.services.resource_store import ResourceStore

logger = logging.getLogger(__name__)

_RESERVED_QUERY_KEYS = {"page", "limit", "sort", "search", "startDate", "endDate"}


def _actor(request: Request) -> str | None:
    return request.headers.get("x-user-id")


def _validated(model: type, data: dict[str, Any]) -> Any:
    """Validate query-derived data, reporting failures as VALIDATION_ERROR."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        errors = [
            {"field": ".".join(str(loc) for loc in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        raise ValidationError("Invalid query parameters", fields=errors) from exc


def create_resource_router(
    *,
    store: ResourceStore,
    settings: EnvelopeSettings,
) -> APIRouter:
    """Factory that creates the CRUD router for one resource store."""

    config = store.config
    router = APIRouter(prefix=f"/api/{config.name}", tags=[config.name])
    max_limit = min(config.max_limit, settings.max_page_limit)
    default_limit = min(settings.default_page_limit, max_limit)

    @router.get("")
    async def list_records(request: Request) -> dict:
        """List records with pagination, search, date range and filters."""
        query = request.query_params
        pagination = sanitize_pagination(
            query, max_limit=max_limit, default_limit=default_limit
        )
        params = _validated(
            SearchParams,
            {**pagination.model_dump(), "search": query.get("search")},
        )
        date_range = _validated(
            DateRangeParams,
            {"startDate": query.get("startDate"), "endDate": query.get("endDate")},
        )
        filters = {
            key: value for key, value in query.items() if key not in _RESERVED_QUERY_KEYS
        }

        records, total = store.find(params, date_range=date_range, filters=filters)
        return paginated_response(
            records, page=params.page, limit=params.limit, total=total
        ).to_wire()

    @router.get("/{item_id}")
    async def get_record(item_id: str) -> dict:
        return success_response(store.get(item_id)).to_wire()

    @router.post("", status_code=201)
    async def create_record(request: Request, body: dict[str, Any] = Body(...)) -> dict:
        record = store.create(body, actor=_actor(request))
        return success_response(record, message=f"{store.label} created successfully").to_wire()

    @router.put("/{item_id}")
    async def update_record(
        item_id: str, request: Request, body: dict[str, Any] = Body(...)
    ) -> dict:
        record = store.update(item_id, body, actor=_actor(request))
        return success_response(record, message=f"{store.label} updated successfully").to_wire()

    @router.delete("/{item_id}")
    async def delete_record(item_id: str, request: Request) -> dict:
        store.delete(item_id, actor=_actor(request))
        return success_response({"deleted": True}).to_wire()

    @router.post("/bulk-delete")
    async def bulk_delete(body: BulkDeleteRequest, request: Request) -> dict:
        return store.bulk_delete(body.ids, actor=_actor(request)).to_wire()

    @router.post("/bulk-update")
    async def bulk_update(body: BulkUpdateRequest[dict[str, Any]], request: Request) -> dict:
        return store.bulk_update(body.ids, body.data, actor=_actor(request)).to_wire()

    return router
