"""League, fixtures, and standings API endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel, Field

from matchday.api.deps import EngineDep, LocksDep, RepoDep, SettingsDep
from matchday.core.errors import UnknownLeague
from matchday.core.league import create_league, delete_league, league_model, withdraw_team
from matchday.core.refresh import apply_and_refresh, refresh_standings_atomically
from matchday.db.engine import get_session
from matchday.db.models import MatchRow, TeamSeasonAggregateRow
from matchday.db.repository import Repository
from matchday.models.league import MatchStatus, TeamStanding

router = APIRouter(prefix="/api/leagues", tags=["leagues"])


class LeagueCreate(BaseModel):
    name: str
    season_id: str
    team_ids: list[str]
    description: str = ""
    points_for_win: int | None = Field(default=None, ge=0)
    points_for_draw: int | None = Field(default=None, ge=0)
    points_for_loss: int | None = Field(default=None, ge=0)
    start_date: datetime | None = None
    end_date: datetime | None = None


class Withdrawal(BaseModel):
    team_id: str


def match_to_dict(m: MatchRow) -> dict:
    return {
        "id": m.id,
        "round_number": m.round_number,
        "matchup_index": m.matchup_index,
        "leg": m.leg,
        "home_team_id": m.home_team_id,
        "away_team_id": m.away_team_id,
        "kickoff": m.kickoff.isoformat(),
        "home_score": m.home_score,
        "away_score": m.away_score,
        "status": m.status,
    }


def _standing_to_dict(s: TeamStanding | TeamSeasonAggregateRow) -> dict:
    return {field: getattr(s, field) for field in TeamStanding.model_fields}


async def _team_names(repo: Repository, team_ids: list[str]) -> dict[str, str]:
    return {t.id: t.name for t in await repo.get_teams(team_ids)}


@router.post("", status_code=201)
async def post_league(body: LeagueCreate, repo: RepoDep, settings: SettingsDep) -> dict:
    """Create a league with its full double round-robin calendar."""
    overrides = body.model_dump(
        include={"points_for_win", "points_for_draw", "points_for_loss"},
        exclude_none=True,
    )
    schedule = settings.default_point_schedule().model_copy(update=overrides)
    created = await create_league(
        repo,
        body.name,
        body.season_id,
        body.team_ids,
        description=body.description,
        schedule=schedule,
        season_start=body.start_date,
        season_end=body.end_date,
    )
    return {
        "data": {
            "id": created.league.id,
            "name": created.league.name,
            "season_id": created.league.season_id,
            "schedule": schedule.model_dump(),
            "fixture_count": len(created.matches),
            "standings": [_standing_to_dict(s) for s in created.standings],
        },
    }


@router.get("/{league_id}")
async def get_league(league_id: str, repo: RepoDep) -> dict:
    """Get a league with its point schedule and match counts by status."""
    league = await repo.get_league(league_id)
    if league is None:
        raise UnknownLeague(f"League {league_id} not found")
    return {
        "data": {
            **league_model(league).model_dump(),
            "team_ids": await repo.get_roster(league_id),
            "matches": await repo.count_matches_by_status(league_id),
        },
    }


@router.delete("/{league_id}")
async def remove_league(league_id: str, engine: EngineDep, locks: LocksDep) -> dict:
    """Delete a league with its fixtures and standings."""
    async with locks.hold(league_id), get_session(engine) as session:
        await delete_league(Repository(session), league_id)
    locks.discard(league_id)
    return {"data": {"id": league_id, "deleted": True}}


@router.get("/{league_id}/fixtures")
async def get_fixtures(
    league_id: str,
    repo: RepoDep,
    status: MatchStatus | None = None,
) -> dict:
    """List a league's fixtures in kickoff order."""
    if await repo.get_league(league_id) is None:
        raise UnknownLeague(f"League {league_id} not found")
    matches = await repo.get_matches_for_league(league_id, status=status)
    return {"data": [match_to_dict(m) for m in matches]}


@router.get("/{league_id}/standings")
async def get_standings(league_id: str, repo: RepoDep) -> dict:
    """Get the stored league table, ordered by position."""
    if await repo.get_league(league_id) is None:
        raise UnknownLeague(f"League {league_id} not found")
    rows = await repo.get_standings(league_id)
    names = await _team_names(repo, [r.team_id for r in rows])
    data = []
    for r in rows:
        entry = _standing_to_dict(r)
        entry["team_name"] = names.get(r.team_id, r.team_id)
        entry["computed_version"] = r.computed_version
        data.append(entry)
    return {"data": data}


@router.post("/{league_id}/standings/recompute")
async def recompute(
    league_id: str,
    engine: EngineDep,
    locks: LocksDep,
    settings: SettingsDep,
) -> dict:
    """Rebuild the table from the match set (idempotent repair)."""
    standings = await refresh_standings_atomically(
        engine,
        locks,
        league_id,
        form_length=settings.matchday_form_length,
        budget_seconds=settings.recompute_budget(),
    )
    return {"data": [_standing_to_dict(s) for s in standings]}


@router.post("/{league_id}/withdrawals")
async def post_withdrawal(
    league_id: str,
    body: Withdrawal,
    engine: EngineDep,
    locks: LocksDep,
    settings: SettingsDep,
) -> dict:
    """Withdraw a team: cancel its open fixtures and rebuild the table."""

    async def _withdraw(repo: Repository) -> int:
        return await withdraw_team(repo, league_id, body.team_id)

    cancelled, standings = await apply_and_refresh(
        engine,
        locks,
        league_id,
        _withdraw,
        form_length=settings.matchday_form_length,
        budget_seconds=settings.recompute_budget(),
    )
    return {
        "data": {
            "team_id": body.team_id,
            "cancelled": cancelled,
            "standings": [_standing_to_dict(s) for s in standings],
        },
    }
