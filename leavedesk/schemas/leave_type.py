# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from leavedesk.models.enums import LeaveCategory

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class CreateLeaveTypePayload(BaseModel):
    """Request body for creating a leave type.

    ``name`` and ``category`` are checked by the catalog so that every entry
    point (API, seed script) gets the same ValidationError.
    """

    name: str = Field(max_length=100)
    category: str
    requires_approval: bool = True
    deducts_balance: bool = True
    description: str | None = Field(default=None, max_length=255)


class UpdateLeaveTypePayload(BaseModel):
    """Partial update; only fields present in the body are merged."""

    name: str | None = Field(default=None, max_length=100)
    category: str | None = None
    requires_approval: bool | None = None
    deducts_balance: bool | None = None
    description: str | None = Field(default=None, max_length=255)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class LeaveTypeResponse(BaseModel):
    """Response schema for a leave type."""

    id: uuid.UUID
    name: str
    category: LeaveCategory
    requires_approval: bool
    deducts_balance: bool
    description: str | None
    created_at: datetime


class LeaveTypeListResponse(BaseModel):
    items: list[LeaveTypeResponse]
    total: int


class DefaultLeaveTypesResponse(BaseModel):
    """The canonical leave types ensured by seeding."""

    annual: LeaveTypeResponse
    sick: LeaveTypeResponse
