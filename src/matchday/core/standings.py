"""League table computation.

The table is a pure function of the match set: it is rebuilt from scratch
on every call and never reads previously stored standings, so running it
again repairs any drift between stored rows and results.

The ``matches`` input may hold ``Match`` models, ``MatchRow`` ORM rows, or
dicts with the same keys (``home_team_id``, ``away_team_id``, ``kickoff``,
``home_score``, ``away_score``, ``status``, optionally ``id``).
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from matchday.core.errors import ConsistencyError, InvalidScore, UnknownLeague
from matchday.models.league import (
    DEFAULT_POINT_SCHEDULE,
    MatchStatus,
    PointSchedule,
    Result,
    TeamStanding,
)

FORM_LENGTH = 5


def _get(entry: Any, key: str, default: Any = None) -> Any:
    if isinstance(entry, dict):
        return entry.get(key, default)
    return getattr(entry, key, default)


def result_for(goals_for: int, goals_against: int) -> Result:
    """Classify one side of a match as a win, draw or loss."""
    if goals_for > goals_against:
        return "W"
    if goals_for == goals_against:
        return "D"
    return "L"


def _match_label(match: Any) -> str:
    match_id = _get(match, "id")
    if match_id:
        return str(match_id)
    return f"{_get(match, 'home_team_id')} v {_get(match, 'away_team_id')}"


def _check_match(match: Any, roster: set[str] | None) -> None:
    home_id = _get(match, "home_team_id")
    away_id = _get(match, "away_team_id")
    if home_id == away_id:
        raise ConsistencyError(f"Match {_match_label(match)} pairs team {home_id} with itself")
    if roster is not None:
        for tid in (home_id, away_id):
            if tid not in roster:
                raise ConsistencyError(
                    f"Match {_match_label(match)} references team {tid} "
                    "which is not on the league roster"
                )


def _decided_scores(match: Any) -> tuple[int, int]:
    home_score = _get(match, "home_score")
    away_score = _get(match, "away_score")
    if home_score is None or away_score is None:
        raise ConsistencyError(f"Completed match {_match_label(match)} has no final score")
    for side, score in (("home_score", home_score), ("away_score", away_score)):
        if score < 0:
            raise InvalidScore(
                f"Match {_match_label(match)} has negative {side} {score}",
                field=side,
                value=score,
            )
    return home_score, away_score


def _chronological_key(match: Any) -> tuple[datetime, str, str, str]:
    return (
        _get(match, "kickoff"),
        str(_get(match, "id") or ""),
        _get(match, "home_team_id"),
        _get(match, "away_team_id"),
    )


def recompute_standings(
    matches: Sequence[Any],
    schedule: PointSchedule = DEFAULT_POINT_SCHEDULE,
    roster: Iterable[str] | None = None,
    form_length: int = FORM_LENGTH,
) -> list[TeamStanding]:
    """Compute the league table from every match of one league and season.

    Args:
        matches: All matches for the league/season, any status.  Only
            ``COMPLETED`` matches count; the rest only make their teams known.
        schedule: Points per win, draw and loss.
        roster: Expected team IDs.  Teams without fixtures still get a row;
            a match naming a team outside the roster is a consistency error.
        form_length: How many recent results make up the form string.

    Returns:
        Standings sorted by points, goal difference, goals for (all
        descending), then team ID, with 1-based ``position`` assigned.

    Raises:
        UnknownLeague: neither matches nor a roster name any team.
        ConsistencyError: a match references an unknown team, pairs a team
            with itself, or is completed without a score.
        InvalidScore: a completed match carries a negative score.
    """
    expected = set(roster) if roster is not None else None

    team_ids: set[str] = set(expected or ())
    for m in matches:
        _check_match(m, expected)
        team_ids.add(_get(m, "home_team_id"))
        team_ids.add(_get(m, "away_team_id"))
    if not team_ids:
        raise UnknownLeague("No teams could be resolved for this league and season")

    table = {tid: TeamStanding(team_id=tid) for tid in team_ids}
    results: dict[str, list[Result]] = {tid: [] for tid in team_ids}

    completed = [m for m in matches if _get(m, "status") == MatchStatus.COMPLETED]
    for m in sorted(completed, key=_chronological_key):
        home_score, away_score = _decided_scores(m)
        sides = (
            (_get(m, "home_team_id"), home_score, away_score),
            (_get(m, "away_team_id"), away_score, home_score),
        )
        for tid, scored, conceded in sides:
            row = table[tid]
            outcome = result_for(scored, conceded)
            row.matches_played += 1
            row.goals_for += scored
            row.goals_against += conceded
            row.points += schedule.points_for(outcome)
            if outcome == "W":
                row.won += 1
            elif outcome == "D":
                row.drawn += 1
            else:
                row.lost += 1
            if conceded == 0:
                row.clean_sheets += 1
            results[tid].append(outcome)

    for tid, row in table.items():
        row.goal_difference = row.goals_for - row.goals_against
        recent = results[tid][-form_length:]
        row.form_string = "".join(recent)
        row.form_points = sum(schedule.points_for(r) for r in recent)

    ordered = sorted(
        table.values(),
        key=lambda s: (-s.points, -s.goal_difference, -s.goals_for, s.team_id),
    )
    for position, row in enumerate(ordered, start=1):
        row.position = position
    return ordered


def format_table(standings: Sequence[TeamStanding], names: dict[str, str] | None = None) -> str:
    """Render standings as a fixed-width text table."""
    names = names or {}
    lines = ["Pos Team                 P  W  D  L  GF  GA  GD Pts Form"]
    for s in standings:
        label = names.get(s.team_id, s.team_id)[:20]
        lines.append(
            f"{s.position:>3} {label:<20} {s.matches_played:>2} {s.won:>2} {s.drawn:>2} "
            f"{s.lost:>2} {s.goals_for:>3} {s.goals_against:>3} {s.goal_difference:>+3} "
            f"{s.points:>3} {s.form_string}"
        )
    return "\n".join(lines)
