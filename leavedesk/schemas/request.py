# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field

from leavedesk.models.enums import RequestStatus

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class SubmitLeavePayload(BaseModel):
    """Request body for submitting a leave request.

    Date ordering and reason content are validated by the lifecycle engine.
    ``user_id`` is only honoured for admins submitting on someone's behalf.
    """

    leave_type_id: uuid.UUID
    start_date: date
    end_date: date
    reason: str
    user_id: uuid.UUID | None = None
    idempotency_key: str | None = Field(default=None, max_length=255)


class DecisionPayload(BaseModel):
    """Request body for approve/reject actions."""

    comments: str | None = Field(default=None, max_length=500)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class LeaveRequestResponse(BaseModel):
    """Response schema for a single leave request."""

    id: uuid.UUID
    user_id: uuid.UUID
    leave_type_id: uuid.UUID
    start_date: date
    end_date: date
    duration: int
    reason: str
    status: RequestStatus
    comments: str | None
    submitted_at: datetime
    decided_at: datetime | None
    decided_by: uuid.UUID | None
    cancelled_at: datetime | None
    cancelled_by: uuid.UUID | None
    idempotency_key: str | None
    created_at: datetime
    updated_at: datetime


class LeaveRequestListResponse(BaseModel):
    """Paginated list of leave requests."""

    items: list[LeaveRequestResponse]
    total: int
