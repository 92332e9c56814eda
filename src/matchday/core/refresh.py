"""Transactional standings refresh.

The standings computation itself is pure; this module wraps it so that
reading the matches and writing the table happen in one transaction, and
so that two refreshes of the same league never interleave:

  - ``StandingsLocks`` hands out one ``asyncio.Lock`` per league.  A league
    belongs to exactly one season, so the league ID is the whole key.
    Different leagues never contend.
  - ``refresh_standings`` snapshots the league's ``results_version`` before
    reading.  Before writing it claims the table with a conditional UPDATE
    that only matches while the version is unchanged; the check and the
    write lock happen in one statement, so a result committed by another
    process in between is always caught.  A failed claim raises
    ``StaleStandingsError`` and the transaction rolls back instead of
    writing a table built from a half-old match set.
  - ``apply_and_refresh`` runs an optional change (e.g. a result report)
    and the refresh under the lock, inside a single ``get_session`` block,
    so the write is all-or-nothing.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncEngine

from matchday.core.errors import StaleStandingsError, UnknownLeague, UnknownMatch
from matchday.core.league import league_schedule
from matchday.core.standings import FORM_LENGTH, format_table, recompute_standings
from matchday.db.engine import get_session
from matchday.db.models import MatchRow
from matchday.db.repository import Repository
from matchday.models.league import TeamStanding

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StandingsLocks:
    """Per-league mutual exclusion for standings writes."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def lock_for(self, league_id: str) -> asyncio.Lock:
        lock = self._locks.get(league_id)
        if lock is None:
            lock = self._locks[league_id] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def hold(self, league_id: str) -> AsyncGenerator[None, None]:
        async with self.lock_for(league_id):
            yield

    def discard(self, league_id: str) -> None:
        """Forget the lock of a deleted league (no-op while it is held)."""
        lock = self._locks.get(league_id)
        if lock is not None and not lock.locked():
            del self._locks[league_id]


def _snapshot(match: MatchRow) -> dict:
    """Detach the fields the aggregator reads from an ORM row."""
    return {
        "id": match.id,
        "home_team_id": match.home_team_id,
        "away_team_id": match.away_team_id,
        "kickoff": match.kickoff,
        "home_score": match.home_score,
        "away_score": match.away_score,
        "status": match.status,
    }


async def refresh_standings(
    repo: Repository,
    league_id: str,
    *,
    form_length: int = FORM_LENGTH,
    budget_seconds: float | None = None,
) -> list[TeamStanding]:
    """Rebuild and store a league's table inside the repo's current transaction.

    Args:
        repo: Repository bound to the caller's session.
        league_id: The league to rebuild.
        form_length: Number of recent results in the form string.
        budget_seconds: Optional wall-clock budget for the computation.  On
            timeout nothing is written and ``TimeoutError`` propagates.

    Raises:
        UnknownLeague: the league does not exist or has no teams.
        StaleStandingsError: results changed while the table was computed.
        ConsistencyError: a match references a team outside the roster.
    """
    league = await repo.get_league(league_id)
    if league is None:
        raise UnknownLeague(f"League {league_id} not found")

    version = await repo.get_results_version(league_id)
    matches = [_snapshot(m) for m in await repo.get_matches_for_league(league_id)]
    roster = await repo.get_roster(league_id)

    compute = functools.partial(
        recompute_standings,
        matches,
        league_schedule(league),
        roster or None,
        form_length,
    )
    if budget_seconds:
        try:
            standings = await asyncio.wait_for(asyncio.to_thread(compute), budget_seconds)
        except TimeoutError:
            logger.warning(
                "standings_refresh_timeout league=%s budget=%.2fs matches=%d",
                league_id,
                budget_seconds,
                len(matches),
            )
            raise
    else:
        standings = compute()

    if not await repo.claim_standings(league_id, version):
        raise StaleStandingsError(league_id, version, await repo.get_results_version(league_id))

    await repo.replace_standings(league_id, league.season_id, standings, version)
    logger.info(
        "standings_refreshed league=%s version=%d teams=%d matches=%d",
        league_id,
        version,
        len(standings),
        len(matches),
    )
    logger.debug("standings_table league=%s\n%s", league_id, format_table(standings))
    return standings


async def apply_and_refresh(
    engine: AsyncEngine,
    locks: StandingsLocks,
    league_id: str,
    change: Callable[[Repository], Awaitable[T]] | None = None,
    *,
    form_length: int = FORM_LENGTH,
    budget_seconds: float | None = None,
) -> tuple[T | None, list[TeamStanding]]:
    """Apply *change* and rebuild the table in one serialized transaction.

    Returns:
        The value returned by *change* (None without one) and the new table.
    """
    async with locks.hold(league_id), get_session(engine) as session:
        repo = Repository(session)
        outcome = await change(repo) if change is not None else None
        standings = await refresh_standings(
            repo,
            league_id,
            form_length=form_length,
            budget_seconds=budget_seconds,
        )
    return outcome, standings


async def refresh_standings_atomically(
    engine: AsyncEngine,
    locks: StandingsLocks,
    league_id: str,
    *,
    form_length: int = FORM_LENGTH,
    budget_seconds: float | None = None,
) -> list[TeamStanding]:
    """On-demand rebuild, e.g. to repair a table after manual data fixes."""
    _, standings = await apply_and_refresh(
        engine,
        locks,
        league_id,
        form_length=form_length,
        budget_seconds=budget_seconds,
    )
    return standings


async def league_for_match(engine: AsyncEngine, match_id: str) -> str:
    """Resolve the league a match belongs to (a match never changes league)."""
    async with get_session(engine) as session:
        match = await Repository(session).get_match(match_id)
        if match is None:
            raise UnknownMatch(f"Match {match_id} not found")
        return match.league_id
