"""Tests for the leave type catalog: service functions and HTTP endpoints."""

from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import select
from sqlmodel import col

from leavedesk.exceptions import ConflictError, NotFoundError, ValidationError
from leavedesk.models.audit import AuditLog
from leavedesk.models.enums import LeaveCategory
from leavedesk.schemas.leave_type import CreateLeaveTypePayload, UpdateLeaveTypePayload
from leavedesk.schemas.request import SubmitLeavePayload
from leavedesk.services import leave_type as leave_type_service
from leavedesk.services.lifecycle import LeaveLifecycle

if TYPE_CHECKING:
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

    from leavedesk.schemas.auth import Principal

ADMIN_HEADERS = {"X-User-Id": str(uuid.uuid4()), "X-Role": "admin"}
EMPLOYEE_HEADERS = {"X-User-Id": str(uuid.uuid4()), "X-Role": "employee"}


def _payload(name: str = "Annual Leave", category: str = "annual", **kwargs: object) -> CreateLeaveTypePayload:
    return CreateLeaveTypePayload(name=name, category=category, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Service: create / get / list
# ---------------------------------------------------------------------------


async def test_create_leave_type(db_session: AsyncSession) -> None:
    created = await leave_type_service.create_leave_type(db_session, _payload(description="Paid time off"))

    assert created.name == "Annual Leave"
    assert created.category == LeaveCategory.ANNUAL
    assert created.requires_approval is True
    assert created.deducts_balance is True
    assert created.description == "Paid time off"


async def test_create_leave_type_trims_name(db_session: AsyncSession) -> None:
    created = await leave_type_service.create_leave_type(db_session, _payload(name="  Study Leave  "))
    assert created.name == "Study Leave"


async def test_create_leave_type_blank_name(db_session: AsyncSession) -> None:
    with pytest.raises(ValidationError, match="name"):
        await leave_type_service.create_leave_type(db_session, _payload(name="   "))


async def test_create_leave_type_unknown_category(db_session: AsyncSession) -> None:
    with pytest.raises(ValidationError, match="category"):
        await leave_type_service.create_leave_type(db_session, _payload(category="sabbatical"))


async def test_create_leave_type_duplicate_name(db_session: AsyncSession) -> None:
    await leave_type_service.create_leave_type(db_session, _payload())
    with pytest.raises(ConflictError):
        await leave_type_service.create_leave_type(db_session, _payload(category="other"))


async def test_create_leave_type_writes_audit(db_session: AsyncSession) -> None:
    actor = uuid.uuid4()
    created = await leave_type_service.create_leave_type(db_session, _payload(), actor)

    result = await db_session.execute(select(AuditLog).where(col(AuditLog.entity_id) == created.id))
    entry = result.scalar_one()
    assert entry.action == "CREATE"
    assert entry.actor_id == actor
    assert entry.after_json is not None
    assert entry.after_json["name"] == "Annual Leave"


async def test_get_leave_type_not_found(db_session: AsyncSession) -> None:
    with pytest.raises(NotFoundError):
        await leave_type_service.get_leave_type(db_session, uuid.uuid4())


async def test_list_leave_types_ordered_by_name(db_session: AsyncSession) -> None:
    await leave_type_service.create_leave_type(db_session, _payload(name="Sick Leave", category="sick"))
    await leave_type_service.create_leave_type(db_session, _payload(name="Annual Leave"))

    listing = await leave_type_service.list_leave_types(db_session)
    assert listing.total == 2
    assert [lt.name for lt in listing.items] == ["Annual Leave", "Sick Leave"]


# ---------------------------------------------------------------------------
# Service: update / delete
# ---------------------------------------------------------------------------


async def test_update_leave_type_merges_fields(db_session: AsyncSession) -> None:
    created = await leave_type_service.create_leave_type(db_session, _payload(description="Old"))

    updated = await leave_type_service.update_leave_type(
        db_session, created.id, UpdateLeaveTypePayload(requires_approval=False)
    )
    assert updated.requires_approval is False
    assert updated.description == "Old"
    assert updated.name == "Annual Leave"


async def test_update_leave_type_not_found(db_session: AsyncSession) -> None:
    with pytest.raises(NotFoundError):
        await leave_type_service.update_leave_type(db_session, uuid.uuid4(), UpdateLeaveTypePayload(name="X"))


async def test_update_leave_type_rejects_null_name(db_session: AsyncSession) -> None:
    created = await leave_type_service.create_leave_type(db_session, _payload())
    with pytest.raises(ValidationError, match="name"):
        await leave_type_service.update_leave_type(db_session, created.id, UpdateLeaveTypePayload(name=None))


async def test_update_leave_type_rejects_unknown_category(db_session: AsyncSession) -> None:
    created = await leave_type_service.create_leave_type(db_session, _payload())
    with pytest.raises(ValidationError):
        await leave_type_service.update_leave_type(db_session, created.id, UpdateLeaveTypePayload(category="bogus"))


async def test_update_leave_type_duplicate_name(db_session: AsyncSession) -> None:
    await leave_type_service.create_leave_type(db_session, _payload())
    sick = await leave_type_service.create_leave_type(db_session, _payload(name="Sick Leave", category="sick"))
    with pytest.raises(ConflictError):
        await leave_type_service.update_leave_type(db_session, sick.id, UpdateLeaveTypePayload(name="Annual Leave"))


async def test_update_keeps_own_name(db_session: AsyncSession) -> None:
    created = await leave_type_service.create_leave_type(db_session, _payload())
    updated = await leave_type_service.update_leave_type(
        db_session, created.id, UpdateLeaveTypePayload(name="Annual Leave", description="Same name")
    )
    assert updated.description == "Same name"


async def test_delete_leave_type(db_session: AsyncSession) -> None:
    created = await leave_type_service.create_leave_type(db_session, _payload())
    await leave_type_service.delete_leave_type(db_session, created.id)

    with pytest.raises(NotFoundError):
        await leave_type_service.get_leave_type(db_session, created.id)


async def test_delete_leave_type_not_found(db_session: AsyncSession) -> None:
    with pytest.raises(NotFoundError):
        await leave_type_service.delete_leave_type(db_session, uuid.uuid4())


async def test_delete_leave_type_in_use(db_session: AsyncSession, employee: Principal) -> None:
    created = await leave_type_service.create_leave_type(db_session, _payload())
    await LeaveLifecycle(db_session).submit(
        employee,
        SubmitLeavePayload(
            leave_type_id=created.id,
            start_date=date(2025, 1, 6),
            end_date=date(2025, 1, 6),
            reason="Errand",
        ),
    )

    with pytest.raises(ConflictError, match="referenced"):
        await leave_type_service.delete_leave_type(db_session, created.id)
    assert (await leave_type_service.get_leave_type(db_session, created.id)).id == created.id


# ---------------------------------------------------------------------------
# Service: defaults
# ---------------------------------------------------------------------------


async def test_seed_default_leave_types(db_session: AsyncSession) -> None:
    defaults = await leave_type_service.seed_default_leave_types(db_session)

    assert defaults.annual.name == "Annual Leave"
    assert defaults.annual.category == LeaveCategory.ANNUAL
    assert defaults.annual.requires_approval is True
    assert defaults.annual.deducts_balance is True
    assert defaults.sick.name == "Sick Leave"
    assert defaults.sick.category == LeaveCategory.SICK
    assert defaults.sick.requires_approval is False
    assert defaults.sick.deducts_balance is True


async def test_seed_default_leave_types_is_idempotent(db_session: AsyncSession) -> None:
    first = await leave_type_service.seed_default_leave_types(db_session)
    second = await leave_type_service.seed_default_leave_types(db_session)

    assert first.annual.id == second.annual.id
    assert first.sick.id == second.sick.id
    assert (await leave_type_service.list_leave_types(db_session)).total == 2


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


async def test_api_create_and_get(async_client: AsyncClient) -> None:
    resp = await async_client.post(
        "/leave-types",
        json={"name": "Medical Leave", "category": "medical", "requires_approval": False},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 201
    created = resp.json()
    assert created["category"] == "medical"
    assert created["requires_approval"] is False

    resp = await async_client.get(f"/leave-types/{created['id']}", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["name"] == "Medical Leave"


async def test_api_create_requires_admin(async_client: AsyncClient) -> None:
    resp = await async_client.post(
        "/leave-types", json={"name": "Medical Leave", "category": "medical"}, headers=EMPLOYEE_HEADERS
    )
    assert resp.status_code == 403
    assert resp.json()["kind"] == "authorization"


async def test_api_create_invalid_category(async_client: AsyncClient) -> None:
    resp = await async_client.post(
        "/leave-types", json={"name": "Odd Leave", "category": "nope"}, headers=ADMIN_HEADERS
    )
    assert resp.status_code == 400
    assert resp.json()["kind"] == "validation"


async def test_api_create_duplicate(async_client: AsyncClient) -> None:
    body = {"name": "Medical Leave", "category": "medical"}
    assert (await async_client.post("/leave-types", json=body, headers=ADMIN_HEADERS)).status_code == 201
    resp = await async_client.post("/leave-types", json=body, headers=ADMIN_HEADERS)
    assert resp.status_code == 409
    assert resp.json()["kind"] == "conflict"


async def test_api_missing_name_is_schema_error(async_client: AsyncClient) -> None:
    resp = await async_client.post("/leave-types", json={"category": "annual"}, headers=ADMIN_HEADERS)
    assert resp.status_code == 422


async def test_api_get_not_found(async_client: AsyncClient) -> None:
    resp = await async_client.get(f"/leave-types/{uuid.uuid4()}", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 404
    assert resp.json() == {
        "error": "NotFoundError",
        "kind": "not_found",
        "detail": "Leave type not found",
        "status_code": 404,
    }


async def test_api_update_and_delete(async_client: AsyncClient) -> None:
    created = (
        await async_client.post(
            "/leave-types", json={"name": "Study Leave", "category": "other"}, headers=ADMIN_HEADERS
        )
    ).json()

    resp = await async_client.patch(
        f"/leave-types/{created['id']}", json={"deducts_balance": False}, headers=ADMIN_HEADERS
    )
    assert resp.status_code == 200
    assert resp.json()["deducts_balance"] is False

    resp = await async_client.delete(f"/leave-types/{created['id']}", headers=ADMIN_HEADERS)
    assert resp.status_code == 204

    resp = await async_client.get(f"/leave-types/{created['id']}", headers=ADMIN_HEADERS)
    assert resp.status_code == 404


async def test_api_seed_defaults_and_list(async_client: AsyncClient) -> None:
    resp = await async_client.post("/leave-types/defaults", headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["sick"]["requires_approval"] is False

    resp = await async_client.get("/leave-types", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["total"] == 2
