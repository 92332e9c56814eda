"""Seed a Matchday league and play rounds for demo purposes.

Usage:
    python scripts/demo_seed.py seed          # Create season + teams + league + fixtures
    python scripts/demo_seed.py play [N]      # Play the next N rounds (default 1)
    python scripts/demo_seed.py status        # Print the league table

Uses a local SQLite database (demo_matchday.db).
"""

from __future__ import annotations

import asyncio
import os
import random
import sys
from datetime import datetime

from sqlalchemy import select

from matchday.core.league import create_league, report_result
from matchday.core.refresh import StandingsLocks, apply_and_refresh
from matchday.core.standings import format_table
from matchday.db.engine import create_engine, create_tables, get_session
from matchday.db.models import LeagueRow
from matchday.db.repository import Repository
from matchday.models.league import MatchStatus, TeamStanding

DEMO_DB = os.environ.get("DATABASE_URL", "sqlite+aiosqlite:///demo_matchday.db")

TEAMS = [
    "Rose City Thorns",
    "Burnside Bridges",
    "St. Johns Herons",
    "Hawthorne Hammers",
    "Alberta Arches",
    "Sellwood Swifts",
]


async def seed(database_url: str = DEMO_DB) -> str:
    """Create the demo league. Returns its ID."""
    engine = create_engine(database_url)
    await create_tables(engine)

    async with get_session(engine) as session:
        repo = Repository(session)
        season = await repo.create_season("2026", datetime(2026, 8, 1), datetime(2027, 5, 1))
        team_ids = [(await repo.create_team(name)).id for name in TEAMS]
        created = await create_league(repo, "Portland Premier", season.id, team_ids)

    print(f"League seeded: {len(TEAMS)} teams, {len(created.matches)} fixtures")
    print(f"League ID: {created.league.id}")
    for name, tid in zip(TEAMS, team_ids, strict=True):
        print(f"  {name}: {tid}")

    await engine.dispose()
    return created.league.id


async def _first_league_id(engine) -> str | None:
    async with get_session(engine) as session:
        result = await session.execute(select(LeagueRow.id).limit(1))
        return result.scalar_one_or_none()


async def play(rounds: int = 1, database_url: str = DEMO_DB, seed_value: int = 42) -> int:
    """Complete the next N rounds with random scores. Returns matches played."""
    engine = create_engine(database_url)
    league_id = await _first_league_id(engine)
    if league_id is None:
        print("No league found. Run 'seed' first.")
        await engine.dispose()
        return 0

    async with get_session(engine) as session:
        repo = Repository(session)
        pending = await repo.get_matches_for_league(league_id, status=MatchStatus.SCHEDULED)
        names = {t.id: t.name for t in await repo.get_teams(await repo.get_roster(league_id))}
    upcoming = sorted({m.round_number for m in pending})[:rounds]

    rng = random.Random(seed_value)
    locks = StandingsLocks()
    played = 0
    for m in pending:
        if m.round_number not in upcoming:
            continue
        home, away = rng.randint(0, 4), rng.randint(0, 3)

        async def _report(repo: Repository, match_id: str = m.id, h: int = home, a: int = away):
            return await report_result(repo, match_id, MatchStatus.COMPLETED, h, a)

        await apply_and_refresh(engine, locks, league_id, _report)
        print(
            f"Round {m.round_number}: {names[m.home_team_id]} {home} - "
            f"{away} {names[m.away_team_id]}"
        )
        played += 1

    await engine.dispose()
    return played


async def status(database_url: str = DEMO_DB) -> None:
    """Print the stored league table."""
    engine = create_engine(database_url)
    league_id = await _first_league_id(engine)
    if league_id is None:
        print("No league found.")
        await engine.dispose()
        return

    async with get_session(engine) as session:
        repo = Repository(session)
        league = await repo.get_league(league_id)
        rows = await repo.get_standings(league_id)
        names = {t.id: t.name for t in await repo.get_teams([r.team_id for r in rows])}
        counts = await repo.count_matches_by_status(league_id)

    standings = [TeamStanding.model_validate(r, from_attributes=True) for r in rows]
    print(f"League: {league.name} | Played: {counts['COMPLETED']} | Left: {counts['SCHEDULED']}")
    print(format_table(standings, names))

    await engine.dispose()


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        return

    cmd = sys.argv[1]
    if cmd == "seed":
        asyncio.run(seed())
    elif cmd == "play":
        n = int(sys.argv[2]) if len(sys.argv) > 2 else 1
        asyncio.run(play(n))
    elif cmd == "status":
        asyncio.run(status())
    else:
        print(f"Unknown command: {cmd}")
        print(__doc__)


if __name__ == "__main__":
    main()
