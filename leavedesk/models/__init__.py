from sqlmodel import SQLModel

from leavedesk.models.audit import AuditLog
from leavedesk.models.balance import LeaveBalance
from leavedesk.models.base import TimestampMixin, UUIDBase
from leavedesk.models.enums import (
    AuditAction,
    AuditEntityType,
    DecisionOutcome,
    LeaveCategory,
    LedgerEntryType,
    LedgerSourceType,
    RequestStatus,
    Role,
)
from leavedesk.models.leave_type import LeaveType
from leavedesk.models.ledger import BalanceLedgerEntry
from leavedesk.models.request import LeaveRequest

__all__ = [
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "BalanceLedgerEntry",
    "DecisionOutcome",
    "LeaveBalance",
    "LeaveCategory",
    "LeaveRequest",
    "LeaveType",
    "LedgerEntryType",
    "LedgerSourceType",
    "RequestStatus",
    "Role",
    "SQLModel",
    "TimestampMixin",
    "UUIDBase",
]
