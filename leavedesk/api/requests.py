# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, Response, status

from leavedesk.api.deps import LifecycleDep, PrincipalDep
from leavedesk.models.enums import RequestStatus
from leavedesk.schemas.request import (
    DecisionPayload,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    SubmitLeavePayload,
)

router = APIRouter(prefix="/leave-requests", tags=["leave-requests"])


@router.post("", response_model=LeaveRequestResponse, status_code=status.HTTP_201_CREATED)
async def submit_leave_request(
    payload: SubmitLeavePayload,
    lifecycle: LifecycleDep,
    auth: PrincipalDep,
) -> LeaveRequestResponse:
    """Submit a new leave request."""
    return await lifecycle.submit(auth, payload)


@router.get("/me", response_model=LeaveRequestListResponse)
async def list_my_leave_requests(
    lifecycle: LifecycleDep,
    auth: PrincipalDep,
    status_filter: RequestStatus | None = Query(default=None, alias="status"),
    leave_type_id: uuid.UUID | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LeaveRequestListResponse:
    """List the caller's own leave requests."""
    return await lifecycle.list_own(
        auth, status=status_filter, leave_type_id=leave_type_id, offset=offset, limit=limit
    )


@router.get("/team", response_model=LeaveRequestListResponse)
async def list_team_leave_requests(
    lifecycle: LifecycleDep,
    auth: PrincipalDep,
    status_filter: RequestStatus | None = Query(default=None, alias="status"),
    leave_type_id: uuid.UUID | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LeaveRequestListResponse:
    """List leave requests of the caller's direct reports (manager/admin)."""
    return await lifecycle.list_team(
        auth, status=status_filter, leave_type_id=leave_type_id, offset=offset, limit=limit
    )


@router.get("", response_model=LeaveRequestListResponse)
async def list_leave_requests(
    lifecycle: LifecycleDep,
    auth: PrincipalDep,
    user_id: uuid.UUID | None = Query(default=None),
    status_filter: RequestStatus | None = Query(default=None, alias="status"),
    leave_type_id: uuid.UUID | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LeaveRequestListResponse:
    """List all leave requests with optional filters (admin only)."""
    return await lifecycle.list_all(
        auth,
        user_id=user_id,
        status=status_filter,
        leave_type_id=leave_type_id,
        offset=offset,
        limit=limit,
    )


@router.get("/{request_id}", response_model=LeaveRequestResponse)
async def get_leave_request(
    request_id: uuid.UUID,
    lifecycle: LifecycleDep,
    auth: PrincipalDep,
) -> LeaveRequestResponse:
    return await lifecycle.get(auth, request_id)


@router.post("/{request_id}/approve", response_model=LeaveRequestResponse)
async def approve_leave_request(
    request_id: uuid.UUID,
    lifecycle: LifecycleDep,
    auth: PrincipalDep,
    payload: DecisionPayload | None = None,
) -> LeaveRequestResponse:
    """Approve a pending leave request (manager/admin)."""
    return await lifecycle.approve(auth, request_id, payload.comments if payload else None)


@router.post("/{request_id}/reject", response_model=LeaveRequestResponse)
async def reject_leave_request(
    request_id: uuid.UUID,
    lifecycle: LifecycleDep,
    auth: PrincipalDep,
    payload: DecisionPayload | None = None,
) -> LeaveRequestResponse:
    """Reject a pending leave request (manager/admin)."""
    return await lifecycle.reject(auth, request_id, payload.comments if payload else None)


@router.post("/{request_id}/cancel", response_model=LeaveRequestResponse)
async def cancel_leave_request(
    request_id: uuid.UUID,
    lifecycle: LifecycleDep,
    auth: PrincipalDep,
) -> LeaveRequestResponse:
    """Cancel a pending or approved leave request."""
    return await lifecycle.cancel(auth, request_id)


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_leave_request(
    request_id: uuid.UUID,
    lifecycle: LifecycleDep,
    auth: PrincipalDep,
) -> Response:
    """Soft-delete a leave request (admin only)."""
    await lifecycle.delete(auth, request_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
