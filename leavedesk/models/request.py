# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

import sqlalchemy as sa
from sqlmodel import Field

from leavedesk.models.base import TimestampMixin, UUIDBase, now_utc
from leavedesk.models.enums import RequestStatus


class LeaveRequest(UUIDBase, TimestampMixin, table=True):
    """One employee's proposed absence over an inclusive date range."""

    __tablename__ = "leave_request"
    __table_args__ = (
        sa.Index("ix_leave_request_user_status", "user_id", "status"),
        sa.UniqueConstraint("user_id", "idempotency_key", name="uq_leave_request_idempotency"),
    )

    user_id: uuid.UUID = Field(index=True)
    leave_type_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("leave_type.id", ondelete="RESTRICT"), nullable=False, index=True
        ),
    )
    start_date: date
    end_date: date
    duration: int
    reason: str = Field(max_length=500)
    status: str = Field(
        default=RequestStatus.PENDING, max_length=50, index=True, sa_column_kwargs={"server_default": "pending"}
    )
    comments: str | None = Field(default=None, max_length=500)
    submitted_at: datetime = Field(default_factory=now_utc, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    decided_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    decided_by: uuid.UUID | None = None
    cancelled_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    cancelled_by: uuid.UUID | None = None
    idempotency_key: str | None = Field(default=None, max_length=255)
    deleted_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    updated_at: datetime = Field(
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )
