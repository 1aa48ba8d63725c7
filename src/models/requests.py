"""Request-side primitives shared by every resource route.

Pagination, search, date-range and id parameters, the audit / soft-delete
field groups attached to stored records, and the bulk mutation bodies.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

T = TypeVar("T")

MAX_PAGE_LIMIT = 100
MAX_BULK_IDS = 100

_OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")
_SORT_RE = re.compile(r"^-?[A-Za-z_][A-Za-z0-9_.]*$")


def sanitize_object_id(value: Any) -> str | None:
    """Return the normalized 24-hex id, or ``None`` if ``value`` is not one."""
    if not isinstance(value, str):
        return None
    candidate = value.strip()
    if not _OBJECT_ID_RE.match(candidate):
        return None
    return candidate.lower()


def pick_allowed_fields(payload: Mapping[str, Any], allowed: Iterable[str]) -> dict[str, Any]:
    """Keep only the keys named in ``allowed`` (mass-assignment guard)."""
    return {field: payload[field] for field in allowed if field in payload}


class PaginationParams(BaseModel):
    """``page`` / ``limit`` / ``sort`` query parameters."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=MAX_PAGE_LIMIT)
    sort: str | None = None

    @field_validator("sort")
    @classmethod
    def _valid_sort(cls, value: str | None) -> str | None:
        if value is None or value == "":
            return None
        if not _SORT_RE.match(value):
            raise ValueError("sort must be a field name, optionally prefixed with '-'")
        return value

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class SearchParams(PaginationParams):
    """Pagination plus a free-text ``search`` term."""

    search: str | None = Field(default=None, max_length=200)

    @field_validator("search")
    @classmethod
    def _strip_search(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None


class DateRangeParams(BaseModel):
    """Inclusive ``startDate`` / ``endDate`` filter."""

    model_config = ConfigDict(populate_by_name=True)

    start_date: date | None = Field(default=None, alias="startDate")
    end_date: date | None = Field(default=None, alias="endDate")

    @model_validator(mode="after")
    def _ordered(self) -> DateRangeParams:
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("startDate must not be after endDate")
        return self

    def contains(self, moment: datetime | date | None) -> bool:
        if moment is None:
            return self.start_date is None and self.end_date is None
        day = moment.date() if isinstance(moment, datetime) else moment
        if self.start_date and day < self.start_date:
            return False
        if self.end_date and day > self.end_date:
            return False
        return True


class IdParam(BaseModel):
    """A ``:id`` path parameter."""

    id: str

    @field_validator("id")
    @classmethod
    def _object_id(cls, value: str) -> str:
        sanitized = sanitize_object_id(value)
        if sanitized is None:
            raise ValueError("id must be a 24-character hex string")
        return sanitized


class AuditFields(BaseModel):
    """Who created / last changed a record, and when."""

    model_config = ConfigDict(populate_by_name=True)

    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")
    created_by: str | None = Field(default=None, alias="createdBy")
    updated_by: str | None = Field(default=None, alias="updatedBy")


class SoftDeleteFields(BaseModel):
    """Tombstone fields for records that are hidden rather than removed."""

    model_config = ConfigDict(populate_by_name=True)

    is_deleted: bool = Field(default=False, alias="isDeleted")
    deleted_at: datetime | None = Field(default=None, alias="deletedAt")
    deleted_by: str | None = Field(default=None, alias="deletedBy")

    @model_validator(mode="after")
    def _deleted_has_timestamp(self) -> SoftDeleteFields:
        if self.is_deleted and self.deleted_at is None:
            raise ValueError("deletedAt is required when isDeleted is true")
        return self


class BulkDeleteRequest(BaseModel):
    """Body of ``POST /:resource/bulk-delete``."""

    ids: list[str] = Field(..., min_length=1, max_length=MAX_BULK_IDS)


class BulkUpdateRequest(BaseModel, Generic[T]):
    """Body of ``POST /:resource/bulk-update``: one patch applied to many ids."""

    ids: list[str] = Field(..., min_length=1, max_length=MAX_BULK_IDS)
    data: T


def _parse_int(raw: Any, default: int) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def sanitize_pagination(
    query: Mapping[str, Any],
    *,
    max_limit: int = MAX_PAGE_LIMIT,
    default_limit: int = 20,
    default_page: int = 1,
) -> PaginationParams:
    """Leniently read pagination from raw query values.

    Unparseable or non-positive values fall back to the defaults and ``limit``
    is clamped to ``max_limit``.
    """
    max_limit = min(max_limit, MAX_PAGE_LIMIT)

    page = _parse_int(query.get("page"), default_page)
    if page < 1:
        page = default_page

    limit = _parse_int(query.get("limit"), default_limit)
    if limit < 1:
        limit = default_limit
    limit = min(limit, max_limit)

    sort = query.get("sort")
    if not isinstance(sort, str) or not _SORT_RE.match(sort):
        sort = None

    return PaginationParams(page=page, limit=limit, sort=sort)
