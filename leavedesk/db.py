from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Annotated, Any

from fastapi import Depends
from sqlalchemy import event
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from leavedesk.config import get_settings
from leavedesk.exceptions import TransientError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Return the singleton async engine, creating it on first call."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            settings.database_url,
            echo=settings.debug,
            pool_pre_ping=True,
        )
        if _engine.dialect.name == "sqlite":
            use_immediate_transactions(_engine)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the singleton async session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            expire_on_commit=False,
        )
    return _session_factory


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency that yields an async database session."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


SessionDep = Annotated[AsyncSession, Depends(get_session)]


async def dispose_engine() -> None:
    """Dispose the engine and reset singletons. Call on app shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run the enclosed block as one transaction.

    Commits when the block finishes, rolls back on any exception (cancellation
    included) and bounds the whole block by ``operation_timeout_seconds``.
    Timeouts and driver-level operational failures surface as TransientError.
    """
    timeout = get_settings().operation_timeout_seconds
    try:
        async with asyncio.timeout(timeout):
            try:
                yield session
                await session.commit()
            except BaseException:
                await session.rollback()
                raise
    except TimeoutError:
        raise TransientError(f"Operation did not complete within {timeout:g}s; no changes were applied") from None
    except OperationalError as exc:
        raise TransientError("Database temporarily unavailable; no changes were applied") from exc


def dialect_insert(session: AsyncSession) -> Callable[[Any], Any]:
    """Return the dialect-specific ``insert`` that supports ON CONFLICT clauses."""
    name = session.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert
    if name == "sqlite":
        return sqlite.insert
    msg = f"Unsupported database dialect: {name}"
    raise RuntimeError(msg)


def use_immediate_transactions(engine: AsyncEngine) -> None:
    """Make SQLite take its write lock when a transaction begins.

    pysqlite defers BEGIN until the first write, so two transactions can read
    the same row and then deadlock upgrading their locks. ``BEGIN IMMEDIATE``
    serializes writers up front and lets the busy timeout do the waiting.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection: Any, _record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")
