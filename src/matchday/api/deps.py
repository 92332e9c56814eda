"""Request-scoped dependencies: engine, settings, standings locks, repository."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from matchday.config import Settings
from matchday.core.refresh import StandingsLocks
from matchday.db import engine as db
from matchday.db.repository import Repository


async def get_engine(request: Request) -> AsyncEngine:
    """Get the database engine from app state."""
    return request.app.state.engine


async def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_locks(request: Request) -> StandingsLocks:
    """Get the per-league standings locks shared by every request."""
    return request.app.state.standings_locks


async def get_session(
    engine: Annotated[AsyncEngine, Depends(get_engine)],
) -> AsyncGenerator[AsyncSession, None]:
    """The request's transaction; committed after the handler returns."""
    async with db.get_session(engine) as session:
        yield session


async def get_repo(session: Annotated[AsyncSession, Depends(get_session)]) -> Repository:
    """Get a repository instance bound to the current session."""
    return Repository(session)


EngineDep = Annotated[AsyncEngine, Depends(get_engine)]
LocksDep = Annotated[StandingsLocks, Depends(get_locks)]
RepoDep = Annotated[Repository, Depends(get_repo)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
