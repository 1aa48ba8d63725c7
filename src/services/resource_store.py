"""In-memory record store behind the generic resource router.

The ResourceStore owns the records of one configured resource: it applies the
ALLOWED_FIELDS guards on writes, stamps audit fields, hides soft-deleted
records, and answers list queries (search, equality filters, created-at date
range, Mongo-style sort) with a page slice plus the total match count.

All state is held in-memory; each record is a plain dict keyed by a 24-hex
``_id`` shaped like a MongoDB ObjectId.
"""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from src.config.resources import ResourceConfig
from src.middleware.error_handler import ApiError, InvalidIdError, NotFoundError, ValidationError
from src.models.requests import (
    DateRangeParams,
    SearchParams,
    pick_allowed_fields,
    sanitize_object_id,
)
from src.models.responses import BulkOperationError, BulkOperationResponse, bulk_operation_result

logger = logging.getLogger(__name__)

_DEFAULT_SORT = "-createdAt"


def new_object_id() -> str:
    """4-byte big-endian timestamp followed by 8 random bytes, hex encoded."""
    return f"{int(time.time()) & 0xFFFFFFFF:08x}{secrets.token_hex(8)}"


def _resolve(record: Mapping[str, Any], path: str) -> Any:
    value: Any = record
    for part in path.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


def _sort_key(value: Any) -> tuple[int, Any]:
    # None sorts lowest, then numbers, datetimes, strings, everything else.
    if value is None:
        return (0, 0)
    if isinstance(value, (bool, int, float)):
        return (1, value)
    if isinstance(value, datetime):
        return (2, value.timestamp())
    if isinstance(value, str):
        return (3, value)
    return (4, str(value))


def _matches(value: Any, raw: str) -> bool:
    if isinstance(value, bool):
        return raw.lower() == str(value).lower()
    return value is not None and str(value) == raw


class ResourceStore:
    """Records of a single resource.

    Parameters
    ----------
    config:
        Registry entry for the resource (allow-lists, search / filter fields).
    """

    def __init__(self, config: ResourceConfig) -> None:
        self._config = config
        self._records: dict[str, dict[str, Any]] = {}

    @property
    def config(self) -> ResourceConfig:
        return self._config

    @property
    def label(self) -> str:
        """Human-readable singular-ish name used in messages."""
        last = self._config.name.rsplit("/", 1)[-1]
        return last.replace("-", " ").capitalize()

    def __len__(self) -> int:
        return sum(1 for record in self._records.values() if not record.get("isDeleted"))

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _require(self, record_id: str) -> dict[str, Any]:
        sanitized = sanitize_object_id(record_id)
        if sanitized is None:
            raise InvalidIdError(f"Invalid {self.label.lower()} ID format")
        record = self._records.get(sanitized)
        if record is None or record.get("isDeleted"):
            raise NotFoundError(f"{self.label} not found", id=sanitized)
        return record

    def get(self, record_id: str) -> dict[str, Any]:
        return dict(self._require(record_id))

    def find(
        self,
        params: SearchParams,
        date_range: DateRangeParams | None = None,
        filters: Mapping[str, str] | None = None,
    ) -> tuple[list[dict[str, Any]], int]:
        """Return ``(page_records, total_matches)`` for a list query."""
        filters = {
            field: raw
            for field, raw in (filters or {}).items()
            if field in self._config.filterable_fields
        }
        needle = params.search.lower() if params.search else None

        matches: list[dict[str, Any]] = []
        for record in self._records.values():
            if record.get("isDeleted"):
                continue
            if any(not _matches(_resolve(record, field), raw) for field, raw in filters.items()):
                continue
            if date_range is not None and (date_range.start_date or date_range.end_date):
                if not date_range.contains(record.get("createdAt")):
                    continue
            if needle is not None and not any(
                needle in str(_resolve(record, field)).lower()
                for field in self._config.searchable_fields
                if _resolve(record, field) is not None
            ):
                continue
            matches.append(record)

        sort = params.sort or _DEFAULT_SORT
        field = sort.lstrip("-")
        matches.sort(key=lambda r: _sort_key(_resolve(r, field)), reverse=sort.startswith("-"))

        total = len(matches)
        page = matches[params.offset : params.offset + params.limit]
        return [dict(record) for record in page], total

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _check_status(self, data: Mapping[str, Any]) -> None:
        allowed = self._config.status_values()
        if allowed is None or "status" not in data:
            return
        if data["status"] not in allowed:
            raise ValidationError(
                f"Invalid status '{data['status']}'",
                field="status",
                allowed=sorted(allowed),
            )

    def create(self, payload: Mapping[str, Any], actor: str | None = None) -> dict[str, Any]:
        data = pick_allowed_fields(payload, self._config.allowed_fields)
        self._check_status(data)

        now = datetime.now(timezone.utc)
        record_id = new_object_id()
        while record_id in self._records:
            record_id = new_object_id()

        record = {
            "_id": record_id,
            **data,
            "createdAt": now,
            "updatedAt": now,
            "createdBy": actor,
            "updatedBy": actor,
            "isDeleted": False,
        }
        self._records[record_id] = record
        logger.info("Created %s %s", self._config.name, record_id)
        return dict(record)

    def update(
        self, record_id: str, payload: Mapping[str, Any], actor: str | None = None
    ) -> dict[str, Any]:
        record = self._require(record_id)
        changes = pick_allowed_fields(payload, self._config.update_fields)
        if not changes:
            raise ValidationError(
                "No updatable fields provided",
                allowed=list(self._config.update_fields),
            )
        self._check_status(changes)

        record.update(changes)
        record["updatedAt"] = datetime.now(timezone.utc)
        record["updatedBy"] = actor
        return dict(record)

    def delete(self, record_id: str, actor: str | None = None) -> None:
        record = self._require(record_id)
        if self._config.soft_delete:
            record["isDeleted"] = True
            record["deletedAt"] = datetime.now(timezone.utc)
            record["deletedBy"] = actor
        else:
            del self._records[record["_id"]]
        logger.info("Deleted %s %s", self._config.name, record["_id"])

    # ------------------------------------------------------------------
    # Bulk mutations
    # ------------------------------------------------------------------

    def bulk_delete(self, ids: list[str], actor: str | None = None) -> BulkOperationResponse:
        """Delete each id independently; failures are reported per id."""
        failures: list[BulkOperationError] = []
        for record_id in ids:
            try:
                self.delete(record_id, actor)
            except ApiError as exc:
                failures.append(BulkOperationError(id=str(record_id), error=exc.message))

        result = bulk_operation_result(len(ids), failures)
        logger.info(
            "Bulk delete on %s: processed=%d failed=%d",
            self._config.name,
            result.processed,
            result.failed,
        )
        return result

    def bulk_update(
        self, ids: list[str], patch: Mapping[str, Any], actor: str | None = None
    ) -> BulkOperationResponse:
        """Apply one patch to each id independently."""
        changes = pick_allowed_fields(patch, self._config.update_fields)
        if not changes:
            raise ValidationError(
                "No updatable fields provided",
                allowed=list(self._config.update_fields),
            )
        self._check_status(changes)

        failures: list[BulkOperationError] = []
        for record_id in ids:
            try:
                self.update(record_id, changes, actor)
            except ApiError as exc:
                failures.append(BulkOperationError(id=str(record_id), error=exc.message))

        result = bulk_operation_result(len(ids), failures)
        logger.info(
            "Bulk update on %s: processed=%d failed=%d",
            self._config.name,
            result.processed,
            result.failed,
        )
        return result
