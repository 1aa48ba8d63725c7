"""Public models for the envelope service."""

from src.models.requests import (
    AuditFields,
    BulkDeleteRequest,
    BulkUpdateRequest,
    DateRangeParams,
    IdParam,
    PaginationParams,
    SearchParams,
    SoftDeleteFields,
    sanitize_pagination,
)
from src.models.responses import (
    ApiResponse,
    BulkOperationError,
    BulkOperationResponse,
    EnvelopeKind,
    ErrorResponse,
    PaginatedResponse,
    Pagination,
    parse_envelope,
)
from src.models.status import (
    ApprovalStatus,
    LifecycleStatus,
    PaymentStatus,
    ProgressStatus,
)

__all__ = [
    "ApiResponse",
    "ApprovalStatus",
    "AuditFields",
    "BulkDeleteRequest",
    "BulkOperationError",
    "BulkOperationResponse",
    "BulkUpdateRequest",
    "DateRangeParams",
    "EnvelopeKind",
    "ErrorResponse",
    "IdParam",
    "LifecycleStatus",
    "PaginatedResponse",
    "Pagination",
    "PaginationParams",
    "PaymentStatus",
    "ProgressStatus",
    "SearchParams",
    "SoftDeleteFields",
    "parse_envelope",
    "sanitize_pagination",
]
