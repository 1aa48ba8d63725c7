"""Unit tests for the envelope API client."""

from __future__ import annotations

import json

import httpx
import pytest

from src.integration.api_client import ApiClientError, EnvelopeApiClient
from src.models.responses import ApiResponse, BulkOperationResponse, PaginatedResponse

BASE_URL = "http://erp.test/api"


def _client(handler, *, max_retries: int = 3) -> EnvelopeApiClient:
    return EnvelopeApiClient(
        BASE_URL,
        "test-key",
        max_retries=max_retries,
        backoff_base=0,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_get_returns_item_envelope():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True, "data": {"_id": "abc", "title": "Visit"}})

    resp = await _client(handler).get("appointment", "abc")

    assert isinstance(resp, ApiResponse)
    assert resp.data == {"_id": "abc", "title": "Visit"}
    assert seen[0].url == httpx.URL(f"{BASE_URL}/appointment/abc")
    assert seen[0].headers["X-Service-Key"] == "test-key"


@pytest.mark.asyncio
async def test_find_sends_query_and_parses_page():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["page"] == "2"
        assert request.url.params["limit"] == "10"
        assert request.url.params["status"] == "active"
        assert "search" not in request.url.params
        return httpx.Response(
            200,
            json={
                "success": True,
                "data": [1, 2],
                "pagination": {"page": 2, "limit": 10, "total": 12, "pages": 2},
            },
        )

    resp = await _client(handler).find("fleet/vehicles", page=2, limit=10, item_type=int, status="active", search=None)

    assert isinstance(resp, PaginatedResponse)
    assert resp.data == [1, 2]
    assert resp.pagination.pages == 2


@pytest.mark.asyncio
async def test_error_envelope_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            404,
            json={"success": False, "error": True, "message": "Appointment not found", "code": "NOT_FOUND"},
        )

    with pytest.raises(ApiClientError) as exc_info:
        await _client(handler).delete("appointment", "0" * 24)

    assert exc_info.value.status_code == 404
    assert exc_info.value.code == "NOT_FOUND"
    assert exc_info.value.error.message == "Appointment not found"


@pytest.mark.asyncio
async def test_non_envelope_body_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    with pytest.raises(ApiClientError) as exc_info:
        await _client(handler).get("appointment", "abc")
    assert exc_info.value.code == "INVALID_ENVELOPE"


@pytest.mark.asyncio
async def test_unexpected_envelope_kind_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": True, "data": {"x": 1}})

    with pytest.raises(ApiClientError) as exc_info:
        await _client(handler).bulk_delete("appointment", ["a"])
    assert exc_info.value.code == "UNEXPECTED_ENVELOPE"
    assert exc_info.value.status_code == 200


@pytest.mark.asyncio
async def test_unexpected_envelope_kind_keeps_status_code():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(201, json={"success": True, "processed": 1, "failed": 0})

    with pytest.raises(ApiClientError) as exc_info:
        await _client(handler).create("appointment", {"title": "Visit"})
    assert exc_info.value.status_code == 201
    assert exc_info.value.code == "UNEXPECTED_ENVELOPE"


@pytest.mark.asyncio
async def test_failure_without_error_flag_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            404,
            json={"success": False, "message": "Appointment not found", "code": "NOT_FOUND"},
        )

    with pytest.raises(ApiClientError) as exc_info:
        await _client(handler).get("appointment", "0" * 24)

    assert exc_info.value.status_code == 404
    assert exc_info.value.code == "NOT_FOUND"
    assert exc_info.value.error.message == "Appointment not found"
    assert exc_info.value.error.error is True


@pytest.mark.asyncio
async def test_bulk_delete_posts_ids():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/appointment/bulk-delete"
        assert json.loads(request.content) == {"ids": ["a", "b"]}
        return httpx.Response(
            200,
            json={"success": False, "processed": 1, "failed": 1, "errors": [{"id": "b", "error": "not found"}]},
        )

    resp = await _client(handler).bulk_delete("appointment", ["a", "b"])

    assert isinstance(resp, BulkOperationResponse)
    assert resp.failed == 1


@pytest.mark.asyncio
async def test_retries_transient_failures():
    attempts = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        if attempts["count"] == 1:
            raise httpx.ConnectError("refused", request=request)
        if attempts["count"] == 2:
            return httpx.Response(503, json={"success": False, "error": True, "message": "busy"})
        return httpx.Response(201, json={"success": True, "data": {"_id": "new"}})

    resp = await _client(handler).create("appointment", {"title": "Visit"})

    assert resp.data == {"_id": "new"}
    assert attempts["count"] == 3


@pytest.mark.asyncio
async def test_gives_up_after_max_retries():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(RuntimeError) as exc_info:
        await _client(handler, max_retries=2).get("appointment", "abc")
    assert isinstance(exc_info.value.__cause__, httpx.ConnectTimeout)


@pytest.mark.asyncio
async def test_client_errors_are_not_retried():
    attempts = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        return httpx.Response(
            400, json={"success": False, "error": True, "message": "Invalid ID format", "code": "INVALID_ID"}
        )

    with pytest.raises(ApiClientError):
        await _client(handler).get("appointment", "bad")
    assert attempts["count"] == 1
