"""Async engine and session factories."""

from __future__ import annotations

from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from enrollment_api.core.settings import settings


def create_engine(database_url: str | None = None, *, echo: bool | None = None) -> AsyncEngine:
    """Build an async engine for ``database_url``.

    SQLite has no row-level locks: a deferred transaction that reads first and
    writes later fails with ``database is locked`` as soon as another writer
    holds the reserved lock. SQLite engines therefore take the write lock up
    front (``BEGIN IMMEDIATE``) and wait up to ``sqlite_busy_timeout_seconds``
    for it, which serialises concurrent transactions the way row locks would.
    """

    url = database_url or settings.database_url
    is_sqlite = url.startswith("sqlite")
    connect_args = {"timeout": settings.sqlite_busy_timeout_seconds} if is_sqlite else {}
    engine = create_async_engine(
        url,
        echo=settings.database_echo if echo is None else echo,
        future=True,
        connect_args=connect_args,
    )
    if is_sqlite:
        _install_sqlite_transaction_hooks(engine)
    return engine


def _install_sqlite_transaction_hooks(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):  # noqa: ANN001
        # pysqlite's own BEGIN handling is replaced by the "begin" hook below.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):  # noqa: ANN001
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


engine = create_engine()
async_session = create_session_factory(engine)


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency yielding a request-scoped session."""

    async with async_session() as session:
        yield session
