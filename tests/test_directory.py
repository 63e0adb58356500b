"""Tests for the staff directory stub."""

from __future__ import annotations

import uuid

from leavedesk.services.directory import (
    DirectoryService,
    EmployeeInfo,
    InMemoryDirectoryService,
    get_directory_service,
    set_directory_service,
)


def _make_employee(name: str = "Jane", manager_id: uuid.UUID | None = None) -> EmployeeInfo:
    return EmployeeInfo(
        id=uuid.uuid4(),
        first_name=name,
        last_name="Doe",
        email=f"{name.lower()}@example.com",
        manager_id=manager_id,
    )


async def test_get_employee_not_found() -> None:
    svc = InMemoryDirectoryService()
    assert await svc.get_employee(uuid.uuid4()) is None


async def test_seed_and_get() -> None:
    svc = InMemoryDirectoryService()
    emp = _make_employee()
    svc.seed(emp)
    result = await svc.get_employee(emp.id)
    assert result is not None
    assert result.email == "jane@example.com"


async def test_list_direct_reports() -> None:
    svc = InMemoryDirectoryService()
    boss = _make_employee("Boss")
    svc.seed(boss)
    ann = _make_employee("Ann", manager_id=boss.id)
    ben = _make_employee("Ben", manager_id=boss.id)
    svc.seed(ann)
    svc.seed(ben)
    svc.seed(_make_employee("Other", manager_id=uuid.uuid4()))

    reports = await svc.list_direct_reports(boss.id)
    assert {e.id for e in reports} == {ann.id, ben.id}


async def test_list_direct_reports_empty() -> None:
    svc = InMemoryDirectoryService()
    assert await svc.list_direct_reports(uuid.uuid4()) == []


def test_in_memory_service_satisfies_protocol() -> None:
    assert isinstance(InMemoryDirectoryService(), DirectoryService)


def test_set_directory_service_overrides_default() -> None:
    svc = InMemoryDirectoryService()
    set_directory_service(svc)
    assert get_directory_service() is svc
