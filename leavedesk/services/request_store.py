"""Persistence for leave requests.

Only the lifecycle engine changes a request's status, and it does so through
``transition_status`` so that concurrent transitions cannot both win.
"""

# ruff: noqa: TC003
from __future__ import annotations

import uuid
from collections.abc import Collection
from datetime import date
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select, update
from sqlmodel import col

from leavedesk.exceptions import NotFoundError
from leavedesk.models.base import now_utc
from leavedesk.models.enums import RequestStatus
from leavedesk.models.request import LeaveRequest

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

ACTIVE_STATUSES = (RequestStatus.PENDING, RequestStatus.APPROVED)


async def create_request(session: AsyncSession, leave_request: LeaveRequest) -> LeaveRequest:
    """Stage a new request and flush it so its ID and defaults are populated."""
    session.add(leave_request)
    await session.flush()
    return leave_request


async def get_request(
    session: AsyncSession,
    request_id: uuid.UUID,
    *,
    include_deleted: bool = False,
) -> LeaveRequest:
    """Fetch a request by ID. Raises NotFoundError if absent or soft-deleted."""
    query = select(LeaveRequest).where(col(LeaveRequest.id) == request_id)
    if not include_deleted:
        query = query.where(col(LeaveRequest.deleted_at).is_(None))
    result = await session.execute(query.execution_options(populate_existing=True))
    leave_request = result.scalar_one_or_none()
    if leave_request is None:
        raise NotFoundError("Leave request not found")
    return leave_request


async def list_requests(
    session: AsyncSession,
    *,
    user_id: uuid.UUID | None = None,
    user_ids: Collection[uuid.UUID] | None = None,
    status: RequestStatus | None = None,
    leave_type_id: uuid.UUID | None = None,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[LeaveRequest], int]:
    """List non-deleted requests with optional filters, newest first.

    Returns the requested page and the total number of matches.
    """
    filters: list[Any] = [col(LeaveRequest.deleted_at).is_(None)]
    if user_id is not None:
        filters.append(col(LeaveRequest.user_id) == user_id)
    if user_ids is not None:
        if not user_ids:
            return [], 0
        filters.append(col(LeaveRequest.user_id).in_(list(user_ids)))
    if status is not None:
        filters.append(col(LeaveRequest.status) == status.value)
    if leave_type_id is not None:
        filters.append(col(LeaveRequest.leave_type_id) == leave_type_id)

    count_result = await session.execute(select(func.count()).select_from(LeaveRequest).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeaveRequest)
        .where(*filters)
        .order_by(col(LeaveRequest.submitted_at).desc(), col(LeaveRequest.id))
        .offset(offset)
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all()), total


async def find_by_idempotency_key(
    session: AsyncSession,
    user_id: uuid.UUID,
    idempotency_key: str,
) -> LeaveRequest | None:
    """Look up a request by its idempotency key, soft-deleted ones included.

    Keys stay reserved after deletion because the unique constraint still
    covers the hidden row.
    """
    result = await session.execute(
        select(LeaveRequest).where(
            col(LeaveRequest.user_id) == user_id,
            col(LeaveRequest.idempotency_key) == idempotency_key,
        )
    )
    return result.scalar_one_or_none()


async def find_overlapping(
    session: AsyncSession,
    user_id: uuid.UUID,
    start_date: date,
    end_date: date,
) -> LeaveRequest | None:
    """Return a pending or approved request of the user sharing any day with the range.

    Ranges are inclusive, so two requests overlap when
    existing.start_date <= new.end_date AND existing.end_date >= new.start_date.
    """
    result = await session.execute(
        select(LeaveRequest)
        .where(
            col(LeaveRequest.user_id) == user_id,
            col(LeaveRequest.deleted_at).is_(None),
            col(LeaveRequest.status).in_([s.value for s in ACTIVE_STATUSES]),
            col(LeaveRequest.start_date) <= end_date,
            col(LeaveRequest.end_date) >= start_date,
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def count_for_leave_type(session: AsyncSession, leave_type_id: uuid.UUID) -> int:
    """Count every request referencing the leave type, soft-deleted ones included."""
    result = await session.execute(
        select(func.count()).select_from(LeaveRequest).where(col(LeaveRequest.leave_type_id) == leave_type_id)
    )
    return result.scalar_one()


async def transition_status(
    session: AsyncSession,
    request_id: uuid.UUID,
    from_status: RequestStatus,
    to_status: RequestStatus,
    **fields: Any,
) -> bool:
    """Compare-and-swap the request's status.

    The UPDATE only matches while the stored status still equals
    ``from_status``; returns False when another transaction got there first.
    ``fields`` are decision/cancellation columns written in the same statement.
    """
    result = await session.execute(
        update(LeaveRequest)
        .where(
            col(LeaveRequest.id) == request_id,
            col(LeaveRequest.status) == from_status.value,
            col(LeaveRequest.deleted_at).is_(None),
        )
        .values(status=to_status.value, updated_at=now_utc(), **fields)
        .returning(col(LeaveRequest.id))
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one_or_none() is not None


async def soft_delete(session: AsyncSession, request_id: uuid.UUID) -> bool:
    """Hide a request from reads while keeping it for the audit trail."""
    now = now_utc()
    result = await session.execute(
        update(LeaveRequest)
        .where(col(LeaveRequest.id) == request_id, col(LeaveRequest.deleted_at).is_(None))
        .values(deleted_at=now, updated_at=now)
        .returning(col(LeaveRequest.id))
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one_or_none() is not None
