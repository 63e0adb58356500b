# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from leavedesk.api.deps import AdminDep, DirectoryDep, PrincipalDep, ensure_can_view_user
from leavedesk.db import SessionDep
from leavedesk.schemas.balance import (
    BalanceListResponse,
    BalanceResponse,
    CreateAdjustmentPayload,
    LedgerEntryResponse,
    LedgerListResponse,
)
from leavedesk.services import balance as balance_service

user_balance_router = APIRouter(prefix="/users/{user_id}", tags=["balances"])

adjustment_router = APIRouter(prefix="/balance-adjustments", tags=["balances"])


@user_balance_router.get("/balances", response_model=BalanceListResponse)
async def list_user_balances(
    user_id: uuid.UUID,
    session: SessionDep,
    auth: PrincipalDep,
    directory: DirectoryDep,
) -> BalanceListResponse:
    """Get the balance of every deducting leave type for a user."""
    await ensure_can_view_user(auth, user_id, directory)
    return await balance_service.list_balances(session, user_id)


@user_balance_router.get("/balances/{leave_type_id}", response_model=BalanceResponse)
async def get_user_balance(
    user_id: uuid.UUID,
    leave_type_id: uuid.UUID,
    session: SessionDep,
    auth: PrincipalDep,
    directory: DirectoryDep,
) -> BalanceResponse:
    await ensure_can_view_user(auth, user_id, directory)
    return await balance_service.get_balance_detail(session, user_id, leave_type_id)


@user_balance_router.get("/ledger", response_model=LedgerListResponse)
async def list_user_ledger(
    user_id: uuid.UUID,
    session: SessionDep,
    auth: PrincipalDep,
    directory: DirectoryDep,
    leave_type_id: uuid.UUID | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LedgerListResponse:
    """Get paginated ledger entries for a user, optionally for one leave type."""
    await ensure_can_view_user(auth, user_id, directory)
    return await balance_service.list_ledger(session, user_id, leave_type_id, offset, limit)


@adjustment_router.post("", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
async def create_adjustment(
    payload: CreateAdjustmentPayload,
    session: SessionDep,
    auth: AdminDep,
) -> LedgerEntryResponse:
    """Create an admin balance adjustment."""
    return await balance_service.create_adjustment(session, auth, payload)
