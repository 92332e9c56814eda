"""Engine, session factory and transaction scope for the league database.

Every service in ``matchday.core`` runs inside one ``get_session`` block:

    engine = create_engine(settings.database_url)
    async with get_session(engine) as session:
        await report_result(Repository(session), match_id, "COMPLETED", 2, 1)
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from matchday.db.models import Base

logger = logging.getLogger(__name__)

# Seconds a writer waits on another transaction's lock before giving up.
LOCK_WAIT_SECONDS = 15

_SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    f"PRAGMA busy_timeout={LOCK_WAIT_SECONDS * 1000}",
    "PRAGMA foreign_keys=ON",
)


def create_engine(database_url: str) -> AsyncEngine:
    """Create the async engine for *database_url* (SQLite via aiosqlite).

    WAL lets standings reads proceed while a result report holds the write
    lock, and a standings claim that finds the lock taken waits up to
    ``LOCK_WAIT_SECONDS`` instead of failing straight away.
    """
    engine = create_async_engine(
        database_url, echo=False, connect_args={"timeout": LOCK_WAIT_SECONDS}
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _apply_pragmas(dbapi_conn: object, connection_record: object) -> None:
        cursor = dbapi_conn.cursor()  # type: ignore[union-attr]
        for pragma in _SQLITE_PRAGMAS:
            cursor.execute(pragma)
        cursor.close()

    return engine


async def create_tables(engine: AsyncEngine) -> None:
    """Create any missing tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("schema_ready tables=%d", len(Base.metadata.tables))


# Session factories by engine. The app shares one engine, each test builds its own.
_factories: dict[int, async_sessionmaker[AsyncSession]] = {}


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """The session factory for *engine*, built on first use."""
    key = id(engine.sync_engine)
    factory = _factories.get(key)
    if factory is None:
        # expire_on_commit=False: rows returned by a service stay readable after commit
        factory = _factories[key] = async_sessionmaker(engine, expire_on_commit=False)
    return factory


@asynccontextmanager
async def get_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """One transaction: commit when the block exits cleanly, roll back otherwise."""
    async with create_session_factory(engine)() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
