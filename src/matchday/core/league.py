"""League lifecycle: creation, result reporting, withdrawals, deletion.

Each function works inside the caller's session (via ``Repository``) and
never commits. Pair them with ``matchday.core.refresh`` so the standings
are rebuilt in the same transaction as the change that invalidated them.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from matchday.core.errors import (
    InputValidationError,
    InvalidScore,
    InvalidTransition,
    UnknownLeague,
    UnknownMatch,
    UnknownSeason,
    UnknownTeam,
)
from matchday.core.fixtures import generate_fixtures, validate_roster
from matchday.core.standings import recompute_standings
from matchday.db.models import LeagueRow, MatchRow
from matchday.db.repository import Repository
from matchday.models.league import League, MatchStatus, PointSchedule, TeamStanding

logger = logging.getLogger(__name__)


# Allowed match transitions. Key = current status, value = set of valid next statuses.
ALLOWED_TRANSITIONS: dict[MatchStatus, set[MatchStatus]] = {
    MatchStatus.SCHEDULED: {
        MatchStatus.IN_PROGRESS,
        MatchStatus.COMPLETED,
        MatchStatus.POSTPONED,
        MatchStatus.CANCELLED,
    },
    # IN_PROGRESS -> IN_PROGRESS updates the running score
    MatchStatus.IN_PROGRESS: {
        MatchStatus.IN_PROGRESS,
        MatchStatus.COMPLETED,
        MatchStatus.CANCELLED,
    },
    MatchStatus.POSTPONED: {MatchStatus.SCHEDULED, MatchStatus.CANCELLED},
    MatchStatus.COMPLETED: set(),  # result is final
    MatchStatus.CANCELLED: set(),
}

# Statuses that may carry a (running or final) score.
_SCORED_STATUSES = frozenset({MatchStatus.IN_PROGRESS, MatchStatus.COMPLETED})


def league_schedule(league: LeagueRow) -> PointSchedule:
    """The point schedule a league was created with."""
    return PointSchedule(
        points_for_win=league.points_for_win,
        points_for_draw=league.points_for_draw,
        points_for_loss=league.points_for_loss,
    )


def league_model(league: LeagueRow) -> League:
    return League(
        id=league.id,
        name=league.name,
        season_id=league.season_id,
        description=league.description,
        schedule=league_schedule(league),
        results_version=league.results_version,
        standings_version=league.standings_version,
    )


@dataclass
class CreatedLeague:
    """Everything written when a league is created."""

    league: LeagueRow
    matches: list[MatchRow]
    standings: list[TeamStanding]


async def create_league(
    repo: Repository,
    name: str,
    season_id: str,
    team_ids: Sequence[str],
    *,
    description: str = "",
    schedule: PointSchedule | None = None,
    season_start: datetime | None = None,
    season_end: datetime | None = None,
) -> CreatedLeague:
    """Create a league, its double round-robin fixtures, and a zeroed table.

    Args:
        repo: Database repository.
        name: Display name for the league.
        season_id: The season the league belongs to.
        team_ids: Roster of at least two distinct, existing teams.
        description: Optional free text.
        schedule: Point schedule; defaults to 3/1/0.
        season_start: Overrides the season's start for fixture spreading.
        season_end: Overrides the season's end for fixture spreading.

    Raises:
        InsufficientTeams, DuplicateTeam, InvalidWindow: invalid roster or window.
        UnknownSeason: the season does not exist.
        UnknownTeam: a team ID is not in the directory.
    """
    if not name or not name.strip():
        raise InputValidationError("League name is required", field="name", value=name)
    validate_roster(team_ids)

    season = await repo.get_season(season_id)
    if season is None:
        raise UnknownSeason(f"Season {season_id} not found")

    found = {t.id for t in await repo.get_teams(team_ids)}
    missing = set(team_ids) - found
    if missing:
        raise UnknownTeam(missing)

    schedule = schedule or PointSchedule()
    fixtures = generate_fixtures(
        team_ids,
        season_start or season.starts_at,
        season_end or season.ends_at,
    )

    league = await repo.create_league(
        season_id=season_id,
        name=name.strip(),
        description=description,
        schedule=schedule,
    )
    await repo.add_to_roster(league.id, team_ids)
    matches = await repo.bulk_create_matches(league.id, season_id, fixtures)

    standings = recompute_standings([], schedule, roster=team_ids)
    await repo.replace_standings(league.id, season_id, standings, version=0)

    logger.info(
        "league_created league_id=%s season_id=%s teams=%d fixtures=%d points=%d/%d/%d",
        league.id,
        season_id,
        len(team_ids),
        len(matches),
        schedule.points_for_win,
        schedule.points_for_draw,
        schedule.points_for_loss,
    )
    return CreatedLeague(league=league, matches=matches, standings=standings)


def _check_score(field: str, value: object) -> int:
    if value is None:
        raise InvalidScore(f"{field} is required for a completed match", field=field)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidScore(f"{field} must be an integer, got {value!r}", field=field, value=value)
    if value < 0:
        raise InvalidScore(f"{field} must be >= 0, got {value}", field=field, value=value)
    return value


async def report_result(
    repo: Repository,
    match_id: str,
    status: MatchStatus | str,
    home_score: int | None = None,
    away_score: int | None = None,
) -> MatchRow:
    """Move a match to a new status, recording scores when it completes.

    Bumps the league's results version so any recomputation that started
    before this change is detected as stale.

    Raises:
        UnknownMatch: no such match.
        InvalidTransition: the status change is not allowed.
        InvalidScore: missing or negative scores, or scores on a status
            that cannot carry them.
    """
    match = await repo.get_match(match_id)
    if match is None:
        raise UnknownMatch(f"Match {match_id} not found")

    try:
        target = MatchStatus(status)
    except ValueError:
        msg = f"Unknown match status {status!r}"
        raise InputValidationError(msg, field="status", value=status) from None

    current = MatchStatus(match.status)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(match_id, current.value, target.value)

    if target == MatchStatus.COMPLETED:
        match.home_score = _check_score("home_score", home_score)
        match.away_score = _check_score("away_score", away_score)
    elif target in _SCORED_STATUSES:
        match.home_score = None if home_score is None else _check_score("home_score", home_score)
        match.away_score = None if away_score is None else _check_score("away_score", away_score)
    else:
        if home_score is not None or away_score is not None:
            raise InvalidScore(f"A {target.value} match cannot carry a score", field="status")
        match.home_score = None
        match.away_score = None

    match.status = target.value
    await repo.session.flush()
    version = await repo.bump_results_version(match.league_id)

    logger.info(
        "match_status_changed match=%s league=%s from=%s to=%s score=%s-%s version=%d",
        match_id,
        match.league_id,
        current.value,
        target.value,
        match.home_score,
        match.away_score,
        version,
    )
    return match


async def withdraw_team(repo: Repository, league_id: str, team_id: str) -> int:
    """Cancel every open fixture of a withdrawing team.

    Completed results stay on the books; the team keeps its row in the
    table. Returns the number of fixtures cancelled.
    """
    league = await repo.get_league(league_id)
    if league is None:
        raise UnknownLeague(f"League {league_id} not found")
    if team_id not in await repo.get_roster(league_id):
        raise UnknownTeam([team_id])

    cancelled = await repo.cancel_open_matches_for_team(league_id, team_id)
    version = await repo.bump_results_version(league_id)
    logger.info(
        "team_withdrawn league=%s team=%s cancelled=%d version=%d",
        league_id,
        team_id,
        cancelled,
        version,
    )
    return cancelled


async def delete_league(repo: Repository, league_id: str) -> None:
    """Delete a league together with its fixtures and standings."""
    league = await repo.get_league(league_id)
    if league is None:
        raise UnknownLeague(f"League {league_id} not found")
    await repo.delete_league(league_id)
    logger.info("league_deleted league=%s", league_id)
