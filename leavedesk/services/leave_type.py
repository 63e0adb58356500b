# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leavedesk.db import atomic
from leavedesk.exceptions import ConflictError, NotFoundError, ValidationError
from leavedesk.models.enums import AuditAction, AuditEntityType, LeaveCategory
from leavedesk.models.leave_type import LeaveType
from leavedesk.schemas.leave_type import (
    CreateLeaveTypePayload,
    DefaultLeaveTypesResponse,
    LeaveTypeListResponse,
    LeaveTypeResponse,
)
from leavedesk.services import request_store
from leavedesk.services.audit import model_to_audit_dict, write_audit_log

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leavedesk.schemas.leave_type import UpdateLeaveTypePayload

logger = logging.getLogger(__name__)

_NON_NULLABLE_FIELDS = ("name", "category", "requires_approval", "deducts_balance")

# Canonical types ensured by seed_default_leave_types, keyed by category.
_DEFAULT_LEAVE_TYPES: dict[LeaveCategory, CreateLeaveTypePayload] = {
    LeaveCategory.ANNUAL: CreateLeaveTypePayload(
        name="Annual Leave",
        category=LeaveCategory.ANNUAL.value,
        requires_approval=True,
        deducts_balance=True,
        description="Regular annual leave",
    ),
    LeaveCategory.SICK: CreateLeaveTypePayload(
        name="Sick Leave",
        category=LeaveCategory.SICK.value,
        requires_approval=False,
        deducts_balance=True,
        description="Leave for health-related reasons",
    ),
}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_leave_type_response(leave_type: LeaveType) -> LeaveTypeResponse:
    """Map a leave type model to its response schema."""
    return LeaveTypeResponse(
        id=leave_type.id,
        name=leave_type.name,
        category=LeaveCategory(leave_type.category),
        requires_approval=leave_type.requires_approval,
        deducts_balance=leave_type.deducts_balance,
        description=leave_type.description,
        created_at=leave_type.created_at,
    )


def _clean_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned:
        raise ValidationError("Leave type name is required")
    return cleaned


def _parse_category(value: str) -> LeaveCategory:
    try:
        return LeaveCategory(value)
    except ValueError:
        allowed = ", ".join(c.value for c in LeaveCategory)
        raise ValidationError(f"Unknown leave category '{value}'; expected one of: {allowed}") from None


async def _ensure_name_available(
    session: AsyncSession,
    name: str,
    exclude_id: uuid.UUID | None = None,
) -> None:
    query = select(LeaveType).where(col(LeaveType.name) == name)
    if exclude_id is not None:
        query = query.where(col(LeaveType.id) != exclude_id)
    result = await session.execute(query)
    if result.scalar_one_or_none() is not None:
        raise ConflictError(f"A leave type named '{name}' already exists")


async def _find_by_name(session: AsyncSession, name: str) -> LeaveType | None:
    result = await session.execute(select(LeaveType).where(col(LeaveType.name) == name))
    return result.scalar_one_or_none()


async def get_leave_type_model(session: AsyncSession, leave_type_id: uuid.UUID) -> LeaveType:
    """Fetch a leave type row. Raises NotFoundError if absent."""
    result = await session.execute(select(LeaveType).where(col(LeaveType.id) == leave_type_id))
    leave_type = result.scalar_one_or_none()
    if leave_type is None:
        raise NotFoundError("Leave type not found")
    return leave_type


async def _insert_leave_type(
    session: AsyncSession,
    payload: CreateLeaveTypePayload,
    actor_id: uuid.UUID | None,
) -> LeaveType:
    """Validate and stage a new leave type in the current transaction."""
    name = _clean_name(payload.name)
    category = _parse_category(payload.category)
    await _ensure_name_available(session, name)

    leave_type = LeaveType(
        name=name,
        category=category.value,
        requires_approval=payload.requires_approval,
        deducts_balance=payload.deducts_balance,
        description=payload.description,
    )
    session.add(leave_type)
    await session.flush()

    await write_audit_log(
        session,
        actor_id=actor_id,
        entity_type=AuditEntityType.LEAVE_TYPE,
        entity_id=leave_type.id,
        action=AuditAction.CREATE,
        after_json=model_to_audit_dict(leave_type),
    )
    return leave_type


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def create_leave_type(
    session: AsyncSession,
    payload: CreateLeaveTypePayload,
    actor_id: uuid.UUID | None = None,
) -> LeaveTypeResponse:
    """Create a leave type. Raises ValidationError on a blank name or unknown category."""
    try:
        async with atomic(session):
            leave_type = await _insert_leave_type(session, payload, actor_id)
    except IntegrityError:
        raise ConflictError(f"A leave type named '{payload.name.strip()}' already exists") from None
    return _build_leave_type_response(leave_type)


async def get_leave_type(session: AsyncSession, leave_type_id: uuid.UUID) -> LeaveTypeResponse:
    """Get a single leave type by ID."""
    return _build_leave_type_response(await get_leave_type_model(session, leave_type_id))


async def list_leave_types(session: AsyncSession) -> LeaveTypeListResponse:
    """List all leave types, ordered by name."""
    result = await session.execute(select(LeaveType).order_by(col(LeaveType.name)))
    leave_types = list(result.scalars().all())
    return LeaveTypeListResponse(
        items=[_build_leave_type_response(lt) for lt in leave_types],
        total=len(leave_types),
    )


async def update_leave_type(
    session: AsyncSession,
    leave_type_id: uuid.UUID,
    payload: UpdateLeaveTypePayload,
    actor_id: uuid.UUID | None = None,
) -> LeaveTypeResponse:
    """Merge the fields present in ``payload`` into an existing leave type.

    Existing requests keep the duration and balance effect they were created
    with; flag changes only influence later transitions.
    """
    changes: dict[str, Any] = payload.model_dump(exclude_unset=True)
    for field in _NON_NULLABLE_FIELDS:
        if field in changes and changes[field] is None:
            raise ValidationError(f"'{field}' cannot be null")

    try:
        async with atomic(session):
            leave_type = await get_leave_type_model(session, leave_type_id)
            before_dict = model_to_audit_dict(leave_type)

            if "name" in changes:
                changes["name"] = _clean_name(changes["name"])
                await _ensure_name_available(session, changes["name"], exclude_id=leave_type_id)
            if "category" in changes:
                changes["category"] = _parse_category(changes["category"]).value

            for field, value in changes.items():
                setattr(leave_type, field, value)
            await session.flush()

            await write_audit_log(
                session,
                actor_id=actor_id,
                entity_type=AuditEntityType.LEAVE_TYPE,
                entity_id=leave_type.id,
                action=AuditAction.UPDATE,
                before_json=before_dict,
                after_json=model_to_audit_dict(leave_type),
            )
    except IntegrityError:
        raise ConflictError("A leave type with this name already exists") from None

    await session.refresh(leave_type)
    return _build_leave_type_response(leave_type)


async def delete_leave_type(
    session: AsyncSession,
    leave_type_id: uuid.UUID,
    actor_id: uuid.UUID | None = None,
) -> None:
    """Delete a leave type that no leave request references.

    Raises ConflictError while any request, soft-deleted ones included, still
    points at the type.
    """
    try:
        async with atomic(session):
            leave_type = await get_leave_type_model(session, leave_type_id)
            referencing = await request_store.count_for_leave_type(session, leave_type_id)
            if referencing:
                raise ConflictError(
                    f"Leave type is referenced by {referencing} leave request(s) and cannot be deleted"
                )

            await write_audit_log(
                session,
                actor_id=actor_id,
                entity_type=AuditEntityType.LEAVE_TYPE,
                entity_id=leave_type.id,
                action=AuditAction.DELETE,
                before_json=model_to_audit_dict(leave_type),
            )
            await session.delete(leave_type)
    except IntegrityError:
        # A request referencing the type was committed concurrently.
        raise ConflictError("Leave type is referenced by leave requests and cannot be deleted") from None


async def seed_default_leave_types(
    session: AsyncSession,
    actor_id: uuid.UUID | None = None,
) -> DefaultLeaveTypesResponse:
    """Ensure the canonical annual and sick leave types exist. Safe to call repeatedly."""
    ensured: dict[LeaveCategory, LeaveTypeResponse] = {}
    for category, payload in _DEFAULT_LEAVE_TYPES.items():
        existing = await _find_by_name(session, payload.name)
        if existing is not None:
            ensured[category] = _build_leave_type_response(existing)
            continue
        try:
            async with atomic(session):
                ensured[category] = _build_leave_type_response(await _insert_leave_type(session, payload, actor_id))
            logger.info("Seeded default leave type %r", payload.name)
        except (IntegrityError, ConflictError):
            # Another seeder created it first.
            existing = await _find_by_name(session, payload.name)
            if existing is None:
                raise
            ensured[category] = _build_leave_type_response(existing)

    return DefaultLeaveTypesResponse(
        annual=ensured[LeaveCategory.ANNUAL],
        sick=ensured[LeaveCategory.SICK],
    )
