from __future__ import annotations

import os
import uuid
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from leavedesk.db import get_session, use_immediate_transactions
from leavedesk.main import app
from leavedesk.models import SQLModel
from leavedesk.models.enums import Role
from leavedesk.schemas.auth import Principal
from leavedesk.services.directory import InMemoryDirectoryService, set_directory_service
from leavedesk.services.notifications import LoggingNotifier, set_notifier

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """Create a fresh database per test.

    Defaults to a throwaway SQLite file; TEST_DATABASE_URL can point the
    suite at PostgreSQL instead.
    """
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'leavedesk.db'}"
    _engine = create_async_engine(url)
    if _engine.dialect.name == "sqlite":
        use_immediate_transactions(_engine)
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    await _engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """Session for service-level tests.

    Do not hold it open across HTTP calls: on SQLite every transaction takes
    the write lock, so use a short-lived ``session_factory()`` there instead.
    """
    async with session_factory() as session:
        yield session


@pytest.fixture
async def async_client(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with a session per request against the test database."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def directory() -> Iterator[InMemoryDirectoryService]:
    """Give every test an empty staff directory and the default notifier."""
    service = InMemoryDirectoryService()
    set_directory_service(service)
    yield service
    set_directory_service(InMemoryDirectoryService())
    set_notifier(LoggingNotifier())


# ---------------------------------------------------------------------------
# Principals
# ---------------------------------------------------------------------------


@pytest.fixture
def employee() -> Principal:
    return Principal(user_id=uuid.uuid4(), role=Role.EMPLOYEE)


@pytest.fixture
def manager() -> Principal:
    return Principal(user_id=uuid.uuid4(), role=Role.MANAGER)


@pytest.fixture
def admin() -> Principal:
    return Principal(user_id=uuid.uuid4(), role=Role.ADMIN)
