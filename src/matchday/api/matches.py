"""Match result reporting endpoint."""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from matchday.api.deps import EngineDep, LocksDep, SettingsDep
from matchday.api.leagues import match_to_dict
from matchday.core.league import report_result
from matchday.core.refresh import apply_and_refresh, league_for_match
from matchday.db.models import MatchRow
from matchday.db.repository import Repository
from matchday.models.league import MatchStatus

router = APIRouter(prefix="/api/matches", tags=["matches"])


class ResultReport(BaseModel):
    status: MatchStatus = MatchStatus.COMPLETED
    home_score: int | None = None
    away_score: int | None = None


@router.put("/{match_id}/result")
async def put_result(
    match_id: str,
    body: ResultReport,
    engine: EngineDep,
    locks: LocksDep,
    settings: SettingsDep,
) -> dict:
    """Record a status change or final score, then rebuild the league table.

    Both happen in one transaction under the league's lock, so a failed
    refresh also discards the result.
    """
    league_id = await league_for_match(engine, match_id)

    async def _report(repo: Repository) -> MatchRow:
        return await report_result(
            repo,
            match_id,
            body.status,
            home_score=body.home_score,
            away_score=body.away_score,
        )

    match, standings = await apply_and_refresh(
        engine,
        locks,
        league_id,
        _report,
        form_length=settings.matchday_form_length,
        budget_seconds=settings.recompute_budget(),
    )
    return {
        "data": {
            "match": match_to_dict(match),
            "standings": [s.model_dump() for s in standings],
        },
    }
