# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Response, status

from leavedesk.api.deps import AdminDep, PrincipalDep
from leavedesk.db import SessionDep
from leavedesk.schemas.leave_type import (
    CreateLeaveTypePayload,
    DefaultLeaveTypesResponse,
    LeaveTypeListResponse,
    LeaveTypeResponse,
    UpdateLeaveTypePayload,
)
from leavedesk.services import leave_type as leave_type_service

router = APIRouter(prefix="/leave-types", tags=["leave-types"])


@router.post("", response_model=LeaveTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_leave_type(
    payload: CreateLeaveTypePayload,
    session: SessionDep,
    auth: AdminDep,
) -> LeaveTypeResponse:
    """Create a new leave type (admin only)."""
    return await leave_type_service.create_leave_type(session, payload, auth.user_id)


@router.post("/defaults", response_model=DefaultLeaveTypesResponse)
async def seed_default_leave_types(
    session: SessionDep,
    auth: AdminDep,
) -> DefaultLeaveTypesResponse:
    """Ensure the annual and sick leave types exist (admin only)."""
    return await leave_type_service.seed_default_leave_types(session, auth.user_id)


@router.get("", response_model=LeaveTypeListResponse)
async def list_leave_types(
    session: SessionDep,
    _auth: PrincipalDep,
) -> LeaveTypeListResponse:
    return await leave_type_service.list_leave_types(session)


@router.get("/{leave_type_id}", response_model=LeaveTypeResponse)
async def get_leave_type(
    leave_type_id: uuid.UUID,
    session: SessionDep,
    _auth: PrincipalDep,
) -> LeaveTypeResponse:
    return await leave_type_service.get_leave_type(session, leave_type_id)


@router.patch("/{leave_type_id}", response_model=LeaveTypeResponse)
async def update_leave_type(
    leave_type_id: uuid.UUID,
    payload: UpdateLeaveTypePayload,
    session: SessionDep,
    auth: AdminDep,
) -> LeaveTypeResponse:
    """Update the fields present in the body (admin only)."""
    return await leave_type_service.update_leave_type(session, leave_type_id, payload, auth.user_id)


@router.delete("/{leave_type_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_leave_type(
    leave_type_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
) -> Response:
    """Delete a leave type no request refers to (admin only)."""
    await leave_type_service.delete_leave_type(session, leave_type_id, auth.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
