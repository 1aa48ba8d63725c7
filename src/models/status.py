"""Status vocabularies reused across unrelated domains."""

from __future__ import annotations

from enum import Enum


class LifecycleStatus(str, Enum):
    """Whether a record is in use."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    ARCHIVED = "archived"


class ApprovalStatus(str, Enum):
    """Approval flow of requests, leaves, expense claims, promotions, ..."""

    DRAFT = "draft"
    PENDING = "pending"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """Settlement state of invoices, bills and payments."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    RECONCILED = "reconciled"


class ProgressStatus(str, Enum):
    """Work progress of tasks, appointments and workflow steps."""

    NOT_STARTED = "not_started"
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


STATUS_VOCABULARIES: dict[str, type[Enum]] = {
    "lifecycle": LifecycleStatus,
    "approval": ApprovalStatus,
    "payment": PaymentStatus,
    "progress": ProgressStatus,
}
