"""Async client for APIs that speak the response envelope.

Sends requests with X-Service-Key authentication, validates every response
body into its envelope model, and turns failure bodies into
``ApiClientError``. Connection failures, timeouts and 502/503/504 responses
are retried with exponential backoff.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from src.models.responses import (
    ApiResponse,
    BulkOperationResponse,
    EnvelopeShapeError,
    ErrorResponse,
    PaginatedResponse,
    error_response,
    parse_envelope,
)

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = frozenset({502, 503, 504})

Envelope = ApiResponse[Any] | PaginatedResponse[Any] | BulkOperationResponse


class ApiClientError(Exception):
    """The API answered with an error envelope (or something unparseable)."""

    def __init__(self, status_code: int, error: ErrorResponse) -> None:
        self.status_code = status_code
        self.error = error
        super().__init__(f"{status_code} {error.code or 'ERROR'}: {error.message}")

    @property
    def code(self) -> str | None:
        return self.error.code


class EnvelopeApiClient:
    """HTTP client returning parsed envelopes.

    Parameters
    ----------
    base_url:
        API root, e.g. ``"https://erp.example.com/api"``.
    service_key:
        X-Service-Key value sent on every request.
    max_retries:
        Attempts per request on transient failures (default 3).
    backoff_base:
        First retry delay in seconds; doubles on each attempt.
    transport:
        Optional httpx transport, used by tests to stub the network.
    """

    def __init__(
        self,
        base_url: str,
        service_key: str,
        *,
        max_retries: int = 3,
        backoff_base: float = 1.0,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._service_key = service_key
        self._max_retries = max(1, max_retries)
        self._backoff_base = backoff_base
        self._timeout = timeout
        self._transport = transport

    async def find(
        self,
        resource: str,
        *,
        page: int = 1,
        limit: int = 20,
        item_type: Any = Any,
        **filters: Any,
    ) -> PaginatedResponse[Any]:
        params = {"page": page, "limit": limit, **{k: v for k, v in filters.items() if v is not None}}
        return await self.request(
            "GET", f"/{resource}", params=params, item_type=item_type, expect=PaginatedResponse
        )

    async def get(self, resource: str, item_id: str, *, item_type: Any = Any) -> ApiResponse[Any]:
        return await self.request(
            "GET", f"/{resource}/{item_id}", item_type=item_type, expect=ApiResponse
        )

    async def create(self, resource: str, payload: dict, *, item_type: Any = Any) -> ApiResponse[Any]:
        return await self.request(
            "POST", f"/{resource}", json=payload, item_type=item_type, expect=ApiResponse
        )

    async def update(
        self, resource: str, item_id: str, payload: dict, *, item_type: Any = Any
    ) -> ApiResponse[Any]:
        return await self.request(
            "PUT", f"/{resource}/{item_id}", json=payload, item_type=item_type, expect=ApiResponse
        )

    async def delete(self, resource: str, item_id: str) -> ApiResponse[Any]:
        return await self.request("DELETE", f"/{resource}/{item_id}", expect=ApiResponse)

    async def bulk_delete(self, resource: str, ids: list[str]) -> BulkOperationResponse:
        return await self.request(
            "POST", f"/{resource}/bulk-delete", json={"ids": ids}, expect=BulkOperationResponse
        )

    async def bulk_update(self, resource: str, ids: list[str], data: dict) -> BulkOperationResponse:
        return await self.request(
            "POST",
            f"/{resource}/bulk-update",
            json={"ids": ids, "data": data},
            expect=BulkOperationResponse,
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict | None = None,
        json: Any = None,
        item_type: Any = Any,
        expect: type | None = None,
    ) -> Envelope:
        """Send one request and return its success envelope.

        Raises
        ------
        ApiClientError
            If the response carries a failure envelope, no valid envelope, or
            an envelope of a different kind than ``expect``.
        RuntimeError
            If the API is unreachable after all retry attempts.
        """
        url = f"{self._base_url}{path}"
        last_exception: Exception | None = None

        for attempt in range(self._max_retries):
            try:
                async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
                    response = await client.request(
                        method,
                        url,
                        params=params,
                        json=json,
                        headers={"X-Service-Key": self._service_key},
                    )
                if response.status_code in _RETRYABLE_STATUS_CODES:
                    raise httpx.HTTPStatusError(
                        f"upstream returned {response.status_code}",
                        request=response.request,
                        response=response,
                    )
                return self._parse(response, item_type, expect)

            except (httpx.ConnectError, httpx.TimeoutException, httpx.HTTPStatusError) as exc:
                last_exception = exc
                backoff = self._backoff_base * 2**attempt
                logger.warning(
                    "%s %s failed (attempt %d/%d): %s, retrying in %.1fs",
                    method,
                    path,
                    attempt + 1,
                    self._max_retries,
                    exc.__class__.__name__,
                    backoff,
                )
                if attempt < self._max_retries - 1:
                    await asyncio.sleep(backoff)

        logger.error("%s %s failed after %d attempts", method, path, self._max_retries)
        raise RuntimeError(
            f"{method} {url} failed after {self._max_retries} attempts"
        ) from last_exception

    @staticmethod
    def _parse(response: httpx.Response, item_type: Any, expect: type | None = None) -> Envelope:
        try:
            envelope = parse_envelope(response.json(), item_type)
        except (ValueError, EnvelopeShapeError, ValidationError) as exc:
            raise ApiClientError(
                response.status_code,
                error_response(
                    f"Response is not a valid envelope: {exc.__class__.__name__}",
                    code="INVALID_ENVELOPE",
                ),
            ) from exc

        if isinstance(envelope, ErrorResponse):
            raise ApiClientError(response.status_code, envelope)
        # Some APIs answer failures as { success: false, message, code } without the error flag.
        if isinstance(envelope, ApiResponse) and not envelope.success:
            raise ApiClientError(
                response.status_code,
                error_response(
                    envelope.message or f"Request failed with status {response.status_code}",
                    code=envelope.code,
                    message_en=envelope.message_en,
                    message_ar=envelope.message_ar,
                ),
            )
        if expect is not None and not isinstance(envelope, expect):
            raise ApiClientError(
                response.status_code,
                error_response(
                    f"Expected {expect.__name__} envelope, got {type(envelope).__name__}",
                    code="UNEXPECTED_ENVELOPE",
                ),
            )
        return envelope
