"""Generic API response envelope models.

Every endpoint on the platform answers with exactly one of these shapes:

    item:       { success: true, data: T }
    paginated:  { success: true, data: [T], pagination: { page, limit, total, pages } }
    error:      { success: false, error: true, message, code?, details?, errors? }
    bulk:       { success: bool, processed, failed, errors?: [{ id, error }] }

Optional fields that are unset never appear on the wire; ``to_wire()`` produces
the exact JSON body. Clients parse any body through ``parse_envelope``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from enum import Enum
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

T = TypeVar("T")


def page_count(total: int, limit: int) -> int:
    """Number of pages needed for ``total`` records at ``limit`` per page."""
    return (total + limit - 1) // limit


class EnvelopeModel(BaseModel):
    """Base for wire models: camelCase aliases, top-level ``None`` omitted."""

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        body = self.model_dump(mode="json", by_alias=True)
        return {key: value for key, value in body.items() if value is not None}


class ApiResponse(EnvelopeModel, Generic[T]):
    """JSON envelope for single-item responses."""

    success: bool
    error: bool | None = None
    message: str | None = None
    message_en: str | None = Field(default=None, alias="messageEn")
    message_ar: str | None = Field(default=None, alias="messageAr")
    data: T | None = None
    code: str | None = None

    @model_validator(mode="after")
    def _success_carries_no_failure(self) -> ApiResponse[T]:
        if self.success and (self.error or self.code is not None):
            raise ValueError("a successful response cannot carry an error flag or code")
        if not self.success and self.data is not None:
            raise ValueError("a failed response cannot carry data")
        return self


class Pagination(BaseModel):
    """Page window metadata; ``pages`` is always ``ceil(total / limit)``."""

    page: int = Field(ge=1)
    limit: int = Field(ge=1)
    total: int = Field(ge=0)
    pages: int = Field(ge=0)

    @model_validator(mode="after")
    def _pages_match_total(self) -> Pagination:
        expected = page_count(self.total, self.limit)
        if self.pages != expected:
            raise ValueError(
                f"pages must be ceil(total / limit) = {expected}, got {self.pages}"
            )
        return self


class PaginatedResponse(EnvelopeModel, Generic[T]):
    """JSON envelope for list endpoints."""

    success: bool
    data: list[T]
    pagination: Pagination

    @model_validator(mode="after")
    def _page_fits_limit(self) -> PaginatedResponse[T]:
        if len(self.data) > self.pagination.limit:
            raise ValueError("page data cannot exceed pagination.limit")
        return self


class ErrorResponse(EnvelopeModel):
    """JSON envelope for failures. Never carries ``data``."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    error: Literal[True] = True
    success: Literal[False] = False
    message: str
    message_en: str | None = Field(default=None, alias="messageEn")
    message_ar: str | None = Field(default=None, alias="messageAr")
    code: str | None = None
    details: list[Any] | None = None
    errors: list[str] | None = None


class BulkOperationError(BaseModel):
    """Failure reason for one id in a batch mutation."""

    id: str
    error: str


class BulkOperationResponse(EnvelopeModel):
    """Result of a batch mutation over a list of ids."""

    success: bool
    processed: int = Field(ge=0)
    failed: int = Field(ge=0)
    errors: list[BulkOperationError] | None = None

    @model_validator(mode="after")
    def _counts_are_consistent(self) -> BulkOperationResponse:
        if self.success != (self.failed == 0):
            raise ValueError("success must be true exactly when no item failed")
        if self.errors is not None and len(self.errors) != self.failed:
            raise ValueError("errors must list one entry per failed item")
        return self

    @property
    def total(self) -> int:
        return self.processed + self.failed


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------


def success_response(
    data: T,
    *,
    message: str | None = None,
    message_en: str | None = None,
    message_ar: str | None = None,
) -> ApiResponse[T]:
    """Wrap ``data`` as ``{success: true, data}``."""
    return ApiResponse[Any](
        success=True,
        data=data,
        message=message,
        message_en=message_en,
        message_ar=message_ar,
    )


def paginated_response(
    items: Sequence[T],
    page: int,
    limit: int,
    total: int | None = None,
) -> PaginatedResponse[T]:
    """Build a paginated envelope.

    Without ``total``, ``items`` is the full result set and the requested page
    is sliced out of it. With ``total``, ``items`` is already the page.
    """
    if total is None:
        total = len(items)
        offset = (page - 1) * limit
        items = items[offset : offset + limit]

    return PaginatedResponse[Any](
        success=True,
        data=list(items),
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            pages=page_count(total, limit),
        ),
    )


def error_response(
    message: str,
    *,
    code: str | None = None,
    details: list[Any] | None = None,
    errors: list[str] | None = None,
    message_en: str | None = None,
    message_ar: str | None = None,
) -> ErrorResponse:
    """Build ``{success: false, error: true, message, ...}``."""
    return ErrorResponse(
        message=message,
        code=code,
        details=details,
        errors=errors,
        message_en=message_en,
        message_ar=message_ar,
    )


def bulk_operation_result(
    attempted: int,
    errors: Iterable[BulkOperationError | Mapping[str, str] | tuple[str, str]] = (),
) -> BulkOperationResponse:
    """Summarise a batch mutation of ``attempted`` ids with per-item failures.

    ``processed`` counts the ids that succeeded, so ``processed + failed`` is
    always the number of ids submitted.
    """
    failures: list[BulkOperationError] = []
    for item in errors:
        if isinstance(item, BulkOperationError):
            failures.append(item)
        elif isinstance(item, tuple):
            failures.append(BulkOperationError(id=item[0], error=item[1]))
        else:
            failures.append(BulkOperationError.model_validate(item))

    if len(failures) > attempted:
        raise ValueError(
            f"{len(failures)} failures reported for {attempted} attempted ids"
        )

    return BulkOperationResponse(
        success=not failures,
        processed=attempted - len(failures),
        failed=len(failures),
        errors=failures or None,
    )


# ---------------------------------------------------------------------------
# Classification / parsing
# ---------------------------------------------------------------------------


class EnvelopeKind(str, Enum):
    """The four wire shapes a response body can take."""

    ITEM = "item"
    PAGINATED = "paginated"
    ERROR = "error"
    BULK = "bulk"


class EnvelopeShapeError(ValueError):
    """Body matches no envelope shape, or mixes several."""


def classify_envelope(body: Any) -> EnvelopeKind:
    """Return the single envelope shape ``body`` conforms to."""
    if not isinstance(body, Mapping):
        raise EnvelopeShapeError("envelope must be a JSON object")

    success = body.get("success")
    if not isinstance(success, bool):
        raise EnvelopeShapeError("envelope must carry a boolean 'success'")

    has_pagination = "pagination" in body
    has_bulk_counts = "processed" in body or "failed" in body

    if body.get("error") is True:
        if success:
            raise EnvelopeShapeError("error envelope cannot have success=true")
        if "data" in body or has_pagination or has_bulk_counts:
            raise EnvelopeShapeError("error envelope cannot carry data, pagination or bulk counts")
        return EnvelopeKind.ERROR

    if has_bulk_counts:
        if "data" in body or has_pagination:
            raise EnvelopeShapeError("bulk envelope cannot carry data or pagination")
        return EnvelopeKind.BULK

    if has_pagination:
        if not isinstance(body.get("data"), list):
            raise EnvelopeShapeError("paginated envelope must carry a data list")
        return EnvelopeKind.PAGINATED

    return EnvelopeKind.ITEM


def parse_envelope(
    body: Any,
    item_type: Any = Any,
) -> ApiResponse[Any] | PaginatedResponse[Any] | ErrorResponse | BulkOperationResponse:
    """Validate ``body`` into the model for its envelope shape."""
    kind = classify_envelope(body)
    if kind is EnvelopeKind.ERROR:
        return ErrorResponse.model_validate(body)
    if kind is EnvelopeKind.BULK:
        return BulkOperationResponse.model_validate(body)
    if kind is EnvelopeKind.PAGINATED:
        return PaginatedResponse[item_type].model_validate(body)
    return ApiResponse[item_type].model_validate(body)
