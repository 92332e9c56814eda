"""Shared test fixtures."""

from datetime import datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

from matchday.config import Settings
from matchday.core.league import create_league
from matchday.db.engine import create_engine, create_tables, get_session
from matchday.db.repository import Repository

SEASON_START = datetime(2026, 1, 1)
SEASON_END = datetime(2026, 3, 1)


@pytest.fixture
def settings() -> Settings:
    """Test settings with defaults."""
    return Settings(matchday_env="development", database_url="sqlite+aiosqlite:///:memory:")


@pytest.fixture
async def engine() -> AsyncEngine:
    """Create an in-memory SQLite engine with all tables."""
    eng = create_engine("sqlite+aiosqlite:///:memory:")
    await create_tables(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
async def repo(engine: AsyncEngine) -> Repository:
    """Yield a repository with a session bound to the in-memory database."""
    async with get_session(engine) as session:
        yield Repository(session)


async def seed_league(repo: Repository, num_teams: int = 4, **kwargs):
    """Create a season, ``num_teams`` teams and a league over them."""
    season = await repo.create_season("2026", SEASON_START, SEASON_END)
    teams = [await repo.create_team(f"Team {chr(65 + i)}") for i in range(num_teams)]
    created = await create_league(repo, "Premier", season.id, [t.id for t in teams], **kwargs)
    return created, teams


@pytest.fixture
def make_league(repo: Repository):
    """Factory fixture: ``await make_league(num_teams)`` -> (CreatedLeague, teams)."""

    async def _make(num_teams: int = 4, **kwargs):
        return await seed_league(repo, num_teams, **kwargs)

    return _make


def _committing_seeder(engine: AsyncEngine):
    async def _seed(num_teams: int = 4, **kwargs):
        async with get_session(engine) as session:
            return await seed_league(Repository(session), num_teams, **kwargs)

    return _seed


@pytest.fixture
def seed(engine: AsyncEngine):
    """Like ``make_league`` but commits, for tests that open their own sessions."""
    return _committing_seeder(engine)


@pytest.fixture
async def file_engine(tmp_path) -> AsyncEngine:
    """A SQLite file database: unlike ``:memory:``, each session gets its own connection."""
    eng = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'matchday.db'}")
    await create_tables(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def seed_file(file_engine: AsyncEngine):
    """``seed`` against ``file_engine``."""
    return _committing_seeder(file_engine)
