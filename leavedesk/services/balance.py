# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import case, func, select, update
from sqlmodel import col

from leavedesk.config import get_settings
from leavedesk.db import atomic, dialect_insert
from leavedesk.exceptions import InsufficientBalanceError, ValidationError
from leavedesk.models.balance import LeaveBalance
from leavedesk.models.base import now_utc
from leavedesk.models.enums import (
    AuditAction,
    AuditEntityType,
    LeaveCategory,
    LedgerEntryType,
    LedgerSourceType,
)
from leavedesk.models.leave_type import LeaveType
from leavedesk.models.ledger import BalanceLedgerEntry
from leavedesk.schemas.balance import (
    BalanceListResponse,
    BalanceResponse,
    LedgerEntryResponse,
    LedgerListResponse,
)
from leavedesk.services.audit import model_to_audit_dict, write_audit_log
from leavedesk.services.leave_type import get_leave_type_model

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leavedesk.schemas.auth import Principal
    from leavedesk.schemas.balance import CreateAdjustmentPayload

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_ledger_entry_response(entry: BalanceLedgerEntry) -> LedgerEntryResponse:
    """Map a ledger entry model to its response schema."""
    return LedgerEntryResponse(
        id=entry.id,
        user_id=entry.user_id,
        leave_type_id=entry.leave_type_id,
        entry_type=LedgerEntryType(entry.entry_type),
        amount=entry.amount,
        source_type=LedgerSourceType(entry.source_type),
        source_id=entry.source_id,
        note=entry.note,
        created_at=entry.created_at,
    )


def initial_allotment(leave_type: LeaveType) -> int:
    """Days a user starts with for ``leave_type`` before any ledger activity."""
    settings = get_settings()
    return settings.initial_allotments.get(leave_type.category, settings.default_initial_allotment)


def _balance_filter(user_id: uuid.UUID, leave_type_id: uuid.UUID) -> list[Any]:
    return [
        col(LeaveBalance.user_id) == user_id,
        col(LeaveBalance.leave_type_id) == leave_type_id,
    ]


async def _read_balance_row(
    session: AsyncSession,
    user_id: uuid.UUID,
    leave_type_id: uuid.UUID,
) -> LeaveBalance | None:
    result = await session.execute(
        select(LeaveBalance)
        .where(*_balance_filter(user_id, leave_type_id))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _ensure_balance_row(session: AsyncSession, user_id: uuid.UUID, leave_type: LeaveType) -> None:
    """Create the balance row at the initial allotment unless it already exists.

    INSERT ... ON CONFLICT DO NOTHING keeps this race-free when two
    transactions touch a fresh (user, leave type) pair at once.
    """
    insert = dialect_insert(session)
    await session.execute(
        insert(LeaveBalance)
        .values(
            user_id=user_id,
            leave_type_id=leave_type.id,
            balance=initial_allotment(leave_type),
            version=1,
            updated_at=now_utc(),
        )
        .on_conflict_do_nothing(index_elements=["user_id", "leave_type_id"])
    )


async def _record_ledger_entry(
    session: AsyncSession,
    *,
    user_id: uuid.UUID,
    leave_type_id: uuid.UUID,
    entry_type: LedgerEntryType,
    amount: int,
    source_type: LedgerSourceType,
    source_id: str,
    note: str | None = None,
) -> uuid.UUID | None:
    """Insert a ledger entry unless one with the same idempotency triple exists.

    Returns the new entry's ID, or None when the entry was already recorded.
    """
    insert = dialect_insert(session)
    result = await session.execute(
        insert(BalanceLedgerEntry)
        .values(
            id=uuid.uuid4(),
            user_id=user_id,
            leave_type_id=leave_type_id,
            entry_type=entry_type.value,
            amount=amount,
            source_type=source_type.value,
            source_id=source_id,
            note=note,
            created_at=now_utc(),
        )
        .on_conflict_do_nothing(index_elements=["source_type", "source_id", "entry_type"])
        .returning(col(BalanceLedgerEntry.id))
    )
    return result.scalar_one_or_none()


async def _reserved_amount(session: AsyncSession, request_id: uuid.UUID) -> int | None:
    """Days reserved for a request, or None if it never reserved anything."""
    result = await session.execute(
        select(col(BalanceLedgerEntry.amount)).where(
            col(BalanceLedgerEntry.source_type) == LedgerSourceType.REQUEST.value,
            col(BalanceLedgerEntry.source_id) == str(request_id),
            col(BalanceLedgerEntry.entry_type) == LedgerEntryType.RESERVE.value,
        )
    )
    amount = result.scalar_one_or_none()
    return None if amount is None else -amount


async def _decrement_with_floor(
    session: AsyncSession,
    user_id: uuid.UUID,
    leave_type_id: uuid.UUID,
    amount: int,
    request_id: uuid.UUID | None,
) -> int | None:
    """Atomically subtract ``amount`` if the balance covers it.

    The floor check lives in the UPDATE's WHERE clause, so concurrent callers
    cannot both pass a stale read. Returns the new balance, or None when the
    balance was insufficient.
    """
    result = await session.execute(
        update(LeaveBalance)
        .where(*_balance_filter(user_id, leave_type_id), col(LeaveBalance.balance) >= amount)
        .values(
            balance=col(LeaveBalance.balance) - amount,
            version=col(LeaveBalance.version) + 1,
            last_request_id=request_id,
            updated_at=now_utc(),
        )
        .returning(col(LeaveBalance.balance))
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one_or_none()


async def _increment(
    session: AsyncSession,
    user_id: uuid.UUID,
    leave_type_id: uuid.UUID,
    amount: int,
    request_id: uuid.UUID | None,
    cap: int | None,
) -> int:
    """Atomically add ``amount``, clamped to ``cap`` when one is configured.

    The cap never lowers a balance that already sits above it.
    """
    current = col(LeaveBalance.balance)
    raised = current + amount
    new_balance = raised if cap is None else case((raised <= cap, raised), (current >= cap, current), else_=cap)
    result = await session.execute(
        update(LeaveBalance)
        .where(*_balance_filter(user_id, leave_type_id))
        .values(
            balance=new_balance,
            version=col(LeaveBalance.version) + 1,
            last_request_id=request_id,
            updated_at=now_utc(),
        )
        .returning(col(LeaveBalance.balance))
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one()


# ---------------------------------------------------------------------------
# Ledger operations (run inside the caller's transaction, never commit)
# ---------------------------------------------------------------------------


async def reserve(
    session: AsyncSession,
    user_id: uuid.UUID,
    leave_type: LeaveType,
    amount: int,
    request_id: uuid.UUID,
) -> bool:
    """Deduct ``amount`` days for an approved request.

    Returns False without touching the balance when this request has already
    reserved. Raises InsufficientBalanceError when the balance would go
    negative; the caller's transaction must then roll back, which also
    discards the ledger entry staged here.
    """
    if amount <= 0:
        raise ValidationError("Reserved amount must be positive")

    await _ensure_balance_row(session, user_id, leave_type)

    entry_id = await _record_ledger_entry(
        session,
        user_id=user_id,
        leave_type_id=leave_type.id,
        entry_type=LedgerEntryType.RESERVE,
        amount=-amount,
        source_type=LedgerSourceType.REQUEST,
        source_id=str(request_id),
    )
    if entry_id is None:
        logger.info("Balance already reserved for request %s; skipping", request_id)
        return False

    remaining = await _decrement_with_floor(session, user_id, leave_type.id, amount, request_id)
    if remaining is None:
        current = await _read_balance_row(session, user_id, leave_type.id)
        available = current.balance if current is not None else 0
        raise InsufficientBalanceError(
            f"Insufficient {leave_type.name} balance: {amount} day(s) requested, {available} available"
        )
    return True


async def release(
    session: AsyncSession,
    user_id: uuid.UUID,
    leave_type: LeaveType,
    request_id: uuid.UUID,
) -> int:
    """Give back exactly what ``request_id`` reserved.

    Returns the number of days restored; 0 when the request never reserved or
    its release was already applied.
    """
    reserved = await _reserved_amount(session, request_id)
    if not reserved:
        return 0

    entry_id = await _record_ledger_entry(
        session,
        user_id=user_id,
        leave_type_id=leave_type.id,
        entry_type=LedgerEntryType.RELEASE,
        amount=reserved,
        source_type=LedgerSourceType.REQUEST,
        source_id=str(request_id),
    )
    if entry_id is None:
        logger.info("Balance already released for request %s; skipping", request_id)
        return 0

    await _ensure_balance_row(session, user_id, leave_type)
    await _increment(session, user_id, leave_type.id, reserved, request_id, get_settings().balance_cap_days)
    return reserved


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def get_balance(session: AsyncSession, user_id: uuid.UUID, leave_type_id: uuid.UUID) -> int:
    """Current remaining days, or the initial allotment if nothing was recorded yet."""
    leave_type = await get_leave_type_model(session, leave_type_id)
    row = await _read_balance_row(session, user_id, leave_type_id)
    return row.balance if row is not None else initial_allotment(leave_type)


def _build_balance_response(user_id: uuid.UUID, leave_type: LeaveType, row: LeaveBalance | None) -> BalanceResponse:
    return BalanceResponse(
        user_id=user_id,
        leave_type_id=leave_type.id,
        leave_type_name=leave_type.name,
        category=LeaveCategory(leave_type.category),
        balance=row.balance if row is not None else initial_allotment(leave_type),
        updated_at=row.updated_at if row is not None else None,
    )


async def get_balance_detail(
    session: AsyncSession,
    user_id: uuid.UUID,
    leave_type_id: uuid.UUID,
) -> BalanceResponse:
    leave_type = await get_leave_type_model(session, leave_type_id)
    row = await _read_balance_row(session, user_id, leave_type_id)
    return _build_balance_response(user_id, leave_type, row)


async def list_balances(session: AsyncSession, user_id: uuid.UUID) -> BalanceListResponse:
    """Balances for every leave type that deducts from a balance."""
    types_result = await session.execute(
        select(LeaveType).where(col(LeaveType.deducts_balance).is_(True)).order_by(col(LeaveType.name))
    )
    leave_types = list(types_result.scalars().all())

    rows_result = await session.execute(
        select(LeaveBalance).where(col(LeaveBalance.user_id) == user_id).execution_options(populate_existing=True)
    )
    rows = {row.leave_type_id: row for row in rows_result.scalars().all()}

    items = [_build_balance_response(user_id, lt, rows.get(lt.id)) for lt in leave_types]
    return BalanceListResponse(items=items, total=len(items))


async def list_ledger(
    session: AsyncSession,
    user_id: uuid.UUID,
    leave_type_id: uuid.UUID | None = None,
    offset: int = 0,
    limit: int = 50,
) -> LedgerListResponse:
    """Get paginated ledger entries for a user, newest first."""
    base_filter: list[Any] = [col(BalanceLedgerEntry.user_id) == user_id]
    if leave_type_id is not None:
        base_filter.append(col(BalanceLedgerEntry.leave_type_id) == leave_type_id)

    count_result = await session.execute(select(func.count()).select_from(BalanceLedgerEntry).where(*base_filter))
    total = count_result.scalar_one()

    entries_result = await session.execute(
        select(BalanceLedgerEntry)
        .where(*base_filter)
        .order_by(col(BalanceLedgerEntry.created_at).desc(), col(BalanceLedgerEntry.id))
        .offset(offset)
        .limit(limit)
    )
    entries = list(entries_result.scalars().all())

    return LedgerListResponse(
        items=[_build_ledger_entry_response(e) for e in entries],
        total=total,
    )


# ---------------------------------------------------------------------------
# Admin adjustments
# ---------------------------------------------------------------------------


async def create_adjustment(
    session: AsyncSession,
    auth: Principal,
    payload: CreateAdjustmentPayload,
) -> LedgerEntryResponse:
    """Grant or deduct days outside the request lifecycle.

    Deductions obey the same non-negative floor as reservations. Grants are
    not clamped by ``balance_cap_days``.
    """
    if payload.amount == 0:
        raise ValidationError("Adjustment amount must be non-zero")

    async with atomic(session):
        leave_type = await get_leave_type_model(session, payload.leave_type_id)
        if not leave_type.deducts_balance:
            raise ValidationError(f"Leave type '{leave_type.name}' does not track a balance")

        await _ensure_balance_row(session, payload.user_id, leave_type)

        source_id = str(uuid.uuid4())
        entry_id = await _record_ledger_entry(
            session,
            user_id=payload.user_id,
            leave_type_id=leave_type.id,
            entry_type=LedgerEntryType.ADJUSTMENT,
            amount=payload.amount,
            source_type=LedgerSourceType.ADMIN,
            source_id=source_id,
            note=payload.reason,
        )

        if payload.amount < 0:
            remaining = await _decrement_with_floor(session, payload.user_id, leave_type.id, -payload.amount, None)
            if remaining is None:
                raise InsufficientBalanceError("Adjustment would make the balance negative")
        else:
            await _increment(session, payload.user_id, leave_type.id, payload.amount, None, cap=None)

        result = await session.execute(select(BalanceLedgerEntry).where(col(BalanceLedgerEntry.id) == entry_id))
        entry = result.scalar_one()

        await write_audit_log(
            session,
            actor_id=auth.user_id,
            entity_type=AuditEntityType.ADJUSTMENT,
            entity_id=entry.id,
            action=AuditAction.CREATE,
            after_json=model_to_audit_dict(entry),
        )

    return _build_ledger_entry_response(entry)
