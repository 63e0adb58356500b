# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable

from pydantic import BaseModel


class EmployeeInfo(BaseModel):
    """Employee record from the staff directory."""

    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    manager_id: uuid.UUID | None = None


@runtime_checkable
class DirectoryService(Protocol):
    """Interface for the staff directory that knows reporting lines."""

    async def get_employee(self, employee_id: uuid.UUID) -> EmployeeInfo | None:
        """Fetch an employee. Returns None if not found."""
        ...

    async def list_direct_reports(self, manager_id: uuid.UUID) -> list[EmployeeInfo]:
        """List employees whose manager is ``manager_id``."""
        ...


class InMemoryDirectoryService:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._employees: dict[uuid.UUID, EmployeeInfo] = {}

    def seed(self, employee: EmployeeInfo) -> None:
        """Seed an employee for testing."""
        self._employees[employee.id] = employee

    async def get_employee(self, employee_id: uuid.UUID) -> EmployeeInfo | None:
        return self._employees.get(employee_id)

    async def list_direct_reports(self, manager_id: uuid.UUID) -> list[EmployeeInfo]:
        return [e for e in self._employees.values() if e.manager_id == manager_id]


_directory_service: DirectoryService = InMemoryDirectoryService()


def get_directory_service() -> DirectoryService:
    """FastAPI dependency for the directory service."""
    return _directory_service


def set_directory_service(service: DirectoryService) -> None:
    """Override the service (for testing or production wiring)."""
    global _directory_service
    _directory_service = service
