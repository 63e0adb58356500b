from __future__ import annotations

import enum


class Role(enum.StrEnum):
    """Role carried by an authenticated principal."""

    EMPLOYEE = "employee"
    MANAGER = "manager"
    ADMIN = "admin"


class LeaveCategory(enum.StrEnum):
    """Category of a leave type."""

    ANNUAL = "annual"
    SICK = "sick"
    PERSONAL = "personal"
    MEDICAL = "medical"
    OTHER = "other"


class RequestStatus(enum.StrEnum):
    """State machine for leave requests."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class DecisionOutcome(enum.StrEnum):
    """Outcome a manager or admin records on a pending request."""

    APPROVE = "approve"
    REJECT = "reject"


class LedgerEntryType(enum.StrEnum):
    """Type of ledger entry affecting balance."""

    RESERVE = "RESERVE"
    RELEASE = "RELEASE"
    ADJUSTMENT = "ADJUSTMENT"


class LedgerSourceType(enum.StrEnum):
    """Origin of a ledger entry."""

    REQUEST = "REQUEST"
    ADMIN = "ADMIN"


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    LEAVE_TYPE = "LEAVE_TYPE"
    LEAVE_REQUEST = "LEAVE_REQUEST"
    ADJUSTMENT = "ADJUSTMENT"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    SUBMIT = "SUBMIT"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    CANCEL = "CANCEL"
