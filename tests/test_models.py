from __future__ import annotations

import uuid
from datetime import date

from leavedesk.models import (
    AuditLog,
    BalanceLedgerEntry,
    LeaveBalance,
    LeaveRequest,
    LeaveType,
    SQLModel,
)
from leavedesk.models.enums import LeaveCategory, RequestStatus

EXPECTED_TABLES = {
    "audit_log",
    "leave_balance",
    "leave_balance_ledger",
    "leave_request",
    "leave_type",
}


def test_all_tables_registered() -> None:
    table_names = set(SQLModel.metadata.tables.keys())
    assert EXPECTED_TABLES.issubset(table_names)


def test_leave_type_defaults() -> None:
    leave_type = LeaveType(name="Annual Leave")
    assert leave_type.category == LeaveCategory.OTHER
    assert leave_type.requires_approval is True
    assert leave_type.deducts_balance is True
    assert leave_type.description is None
    assert leave_type.id is not None


def test_leave_request_defaults() -> None:
    request = LeaveRequest(
        user_id=uuid.uuid4(),
        leave_type_id=uuid.uuid4(),
        start_date=date(2025, 1, 6),
        end_date=date(2025, 1, 8),
        duration=3,
        reason="Vacation",
    )
    assert request.status == RequestStatus.PENDING
    assert request.submitted_at is not None
    assert request.decided_by is None
    assert request.cancelled_at is None
    assert request.deleted_at is None


def test_leave_balance_defaults() -> None:
    balance = LeaveBalance(user_id=uuid.uuid4(), leave_type_id=uuid.uuid4())
    assert balance.balance == 0
    assert balance.version == 1
    assert balance.last_request_id is None


def test_balance_primary_key_is_user_and_leave_type() -> None:
    pk = [c.name for c in SQLModel.metadata.tables["leave_balance"].primary_key.columns]
    assert pk == ["user_id", "leave_type_id"]


def test_ledger_idempotency_constraint_declared() -> None:
    table = SQLModel.metadata.tables["leave_balance_ledger"]
    unique_sets = {
        tuple(c.name for c in constraint.columns)
        for constraint in table.constraints
        if constraint.__class__.__name__ == "UniqueConstraint"
    }
    assert ("source_type", "source_id", "entry_type") in unique_sets


def test_ledger_entry_instantiation() -> None:
    entry = BalanceLedgerEntry(
        user_id=uuid.uuid4(),
        leave_type_id=uuid.uuid4(),
        entry_type="RESERVE",
        amount=-3,
        source_type="REQUEST",
        source_id=str(uuid.uuid4()),
    )
    assert entry.amount == -3
    assert entry.note is None


def test_audit_log_instantiation() -> None:
    log = AuditLog(
        actor_id=None,
        entity_type="LEAVE_REQUEST",
        entity_id=uuid.uuid4(),
        action="SUBMIT",
    )
    assert log.before_json is None
    assert log.after_json is None
