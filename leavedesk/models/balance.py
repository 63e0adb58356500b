# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from leavedesk.models.base import now_utc


class LeaveBalance(SQLModel, table=True):
    """Remaining days per (user, leave type), mutated only by the balance ledger."""

    __tablename__ = "leave_balance"
    __table_args__ = (sa.PrimaryKeyConstraint("user_id", "leave_type_id"),)

    user_id: uuid.UUID = Field(index=True)
    leave_type_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("leave_type.id", ondelete="CASCADE")),
    )
    balance: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    last_request_id: uuid.UUID | None = None
    updated_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),
        sa_column_kwargs={"server_default": sa.func.now()},
    )
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
