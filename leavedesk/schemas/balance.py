# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from leavedesk.models.enums import LeaveCategory, LedgerEntryType, LedgerSourceType

# ---------------------------------------------------------------------------
# Balance response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    """Remaining balance for one leave type."""

    user_id: uuid.UUID
    leave_type_id: uuid.UUID
    leave_type_name: str
    category: LeaveCategory
    balance: int
    updated_at: datetime | None  # None until the first ledger mutation


class BalanceListResponse(BaseModel):
    items: list[BalanceResponse]
    total: int


# ---------------------------------------------------------------------------
# Ledger response schemas
# ---------------------------------------------------------------------------


class LedgerEntryResponse(BaseModel):
    """A single ledger entry."""

    id: uuid.UUID
    user_id: uuid.UUID
    leave_type_id: uuid.UUID
    entry_type: LedgerEntryType
    amount: int
    source_type: LedgerSourceType
    source_id: str
    note: str | None
    created_at: datetime


class LedgerListResponse(BaseModel):
    """Paginated ledger entries."""

    items: list[LedgerEntryResponse]
    total: int


# ---------------------------------------------------------------------------
# Adjustment request schema
# ---------------------------------------------------------------------------


class CreateAdjustmentPayload(BaseModel):
    """Request body for an admin balance adjustment."""

    user_id: uuid.UUID
    leave_type_id: uuid.UUID
    amount: int = Field(description="Signed day count: positive to grant, negative to deduct")
    reason: str = Field(min_length=1, max_length=1000)
