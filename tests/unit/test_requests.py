"""Unit tests for request-side primitives."""

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from src.models.requests import (
    MAX_BULK_IDS,
    AuditFields,
    BulkDeleteRequest,
    BulkUpdateRequest,
    DateRangeParams,
    IdParam,
    PaginationParams,
    SearchParams,
    SoftDeleteFields,
    pick_allowed_fields,
    sanitize_object_id,
    sanitize_pagination,
)

VALID_ID = "507f1f77bcf86cd799439011"


# ---------------------------------------------------------------------------
# Object ids and field allow-lists
# ---------------------------------------------------------------------------


class TestSanitizeObjectId:
    def test_valid_id_passes(self):
        assert sanitize_object_id(VALID_ID) == VALID_ID

    def test_normalizes_case_and_whitespace(self):
        assert sanitize_object_id(f"  {VALID_ID.upper()} ") == VALID_ID

    @pytest.mark.parametrize("value", ["", "123", VALID_ID + "0", "z" * 24, None, 42, {"$gt": ""}])
    def test_invalid_ids_rejected(self, value):
        assert sanitize_object_id(value) is None


class TestPickAllowedFields:
    def test_drops_unlisted_keys(self):
        payload = {"title": "Visit", "isAdmin": True, "_id": "x"}
        assert pick_allowed_fields(payload, ["title", "notes"]) == {"title": "Visit"}

    def test_keeps_explicit_none(self):
        assert pick_allowed_fields({"notes": None}, ["notes"]) == {"notes": None}


# ---------------------------------------------------------------------------
# Pagination / search
# ---------------------------------------------------------------------------


class TestPaginationParams:
    def test_defaults(self):
        params = PaginationParams()
        assert (params.page, params.limit, params.sort) == (1, 20, None)
        assert params.offset == 0

    def test_offset(self):
        assert PaginationParams(page=3, limit=25).offset == 50

    @pytest.mark.parametrize("kwargs", [{"page": 0}, {"limit": 0}, {"limit": 101}])
    def test_bounds(self, kwargs):
        with pytest.raises(ValidationError):
            PaginationParams(**kwargs)

    @pytest.mark.parametrize("sort", ["createdAt", "-createdAt", "client.name", "_id"])
    def test_valid_sort(self, sort):
        assert PaginationParams(sort=sort).sort == sort

    @pytest.mark.parametrize("sort", ["--x", "name desc", "$where", "1abc"])
    def test_invalid_sort(self, sort):
        with pytest.raises(ValidationError):
            PaginationParams(sort=sort)

    def test_empty_sort_is_none(self):
        assert PaginationParams(sort="").sort is None


class TestSearchParams:
    def test_search_is_stripped(self):
        assert SearchParams(search="  visit ").search == "visit"

    def test_blank_search_is_none(self):
        assert SearchParams(search="   ").search is None

    def test_search_length_capped(self):
        with pytest.raises(ValidationError):
            SearchParams(search="x" * 201)


class TestSanitizePagination:
    def test_defaults_for_empty_query(self):
        params = sanitize_pagination({})
        assert (params.page, params.limit) == (1, 20)

    def test_parses_strings(self):
        params = sanitize_pagination({"page": "2", "limit": "10", "sort": "-createdAt"})
        assert (params.page, params.limit, params.sort) == (2, 10, "-createdAt")

    def test_garbage_falls_back_to_defaults(self):
        params = sanitize_pagination({"page": "abc", "limit": "-5"})
        assert (params.page, params.limit) == (1, 20)

    def test_limit_clamped_to_hard_maximum(self):
        assert sanitize_pagination({"limit": "500"}).limit == 100

    def test_limit_clamped_to_resource_maximum(self):
        assert sanitize_pagination({"limit": "80"}, max_limit=50).limit == 50

    def test_resource_maximum_cannot_exceed_hard_maximum(self):
        assert sanitize_pagination({"limit": "150"}, max_limit=500).limit == 100

    def test_unsafe_sort_dropped(self):
        assert sanitize_pagination({"sort": "name; drop"}).sort is None


# ---------------------------------------------------------------------------
# Date range
# ---------------------------------------------------------------------------


class TestDateRangeParams:
    def test_aliases(self):
        params = DateRangeParams.model_validate({"startDate": "2024-01-01", "endDate": "2024-01-31"})
        assert params.start_date == date(2024, 1, 1)
        assert params.end_date == date(2024, 1, 31)

    def test_start_after_end_rejected(self):
        with pytest.raises(ValidationError):
            DateRangeParams.model_validate({"startDate": "2024-02-01", "endDate": "2024-01-01"})

    def test_contains_is_inclusive(self):
        params = DateRangeParams(start_date=date(2024, 1, 1), end_date=date(2024, 1, 31))
        assert params.contains(datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc))
        assert params.contains(datetime(2024, 1, 31, 23, 59, tzinfo=timezone.utc))
        assert not params.contains(datetime(2024, 2, 1, tzinfo=timezone.utc))
        assert not params.contains(date(2023, 12, 31))

    def test_open_ended(self):
        params = DateRangeParams(start_date=date(2024, 1, 1))
        assert params.contains(date(2030, 1, 1))
        assert not params.contains(None)


# ---------------------------------------------------------------------------
# Ids, audit, soft delete, bulk bodies
# ---------------------------------------------------------------------------


class TestIdParam:
    def test_normalizes(self):
        assert IdParam(id=VALID_ID.upper()).id == VALID_ID

    def test_rejects_malformed(self):
        with pytest.raises(ValidationError):
            IdParam(id="not-an-id")


class TestAuditAndSoftDelete:
    def test_audit_fields_camel_case(self):
        fields = AuditFields.model_validate({"createdBy": "u1", "createdAt": "2024-01-01T00:00:00Z"})
        dumped = fields.model_dump(by_alias=True, mode="json")
        assert dumped["createdBy"] == "u1"
        assert dumped["createdAt"].startswith("2024-01-01")

    def test_deleted_requires_timestamp(self):
        with pytest.raises(ValidationError):
            SoftDeleteFields.model_validate({"isDeleted": True})

    def test_deleted_with_timestamp(self):
        fields = SoftDeleteFields.model_validate(
            {"isDeleted": True, "deletedAt": "2024-01-01T00:00:00Z", "deletedBy": "u1"}
        )
        assert fields.is_deleted is True


class TestBulkRequests:
    def test_delete_requires_ids(self):
        with pytest.raises(ValidationError):
            BulkDeleteRequest(ids=[])

    def test_delete_caps_ids(self):
        with pytest.raises(ValidationError):
            BulkDeleteRequest(ids=[VALID_ID] * (MAX_BULK_IDS + 1))

    def test_update_carries_typed_patch(self):
        body = BulkUpdateRequest[dict](ids=[VALID_ID], data={"status": "approved"})
        assert body.data == {"status": "approved"}
