# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field

from leavedesk.models.base import UUIDBase, now_utc


class BalanceLedgerEntry(UUIDBase, table=True):
    """Append-only record of every balance mutation.

    The (source_type, source_id, entry_type) constraint guarantees a request
    reserves at most once and releases at most once.
    """

    __tablename__ = "leave_balance_ledger"
    __table_args__ = (
        sa.Index("ix_ledger_user_leave_type", "user_id", "leave_type_id"),
        sa.UniqueConstraint("source_type", "source_id", "entry_type", name="uq_ledger_idempotency"),
    )

    user_id: uuid.UUID = Field(index=True)
    leave_type_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("leave_type.id", ondelete="CASCADE"), nullable=False, index=True
        ),
    )
    entry_type: str = Field(max_length=50)
    amount: int
    source_type: str = Field(max_length=50)
    source_id: str = Field(max_length=255)
    note: str | None = Field(default=None, max_length=1000)
    created_at: datetime = Field(
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )
