"""League, match, and standings models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field, model_validator

Result = Literal["W", "D", "L"]


class MatchStatus(StrEnum):
    """Lifecycle of a single match.

    The str mixin allows direct comparison with raw status strings stored
    in the database (e.g., ``match.status == MatchStatus.COMPLETED``).
    """

    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    POSTPONED = "POSTPONED"
    CANCELLED = "CANCELLED"


class PointSchedule(BaseModel):
    """Competition points awarded per result. Defaults to 3/1/0."""

    points_for_win: int = Field(default=3, ge=0)
    points_for_draw: int = Field(default=1, ge=0)
    points_for_loss: int = Field(default=0, ge=0)

    model_config = {"frozen": True}

    def points_for(self, result: Result) -> int:
        if result == "W":
            return self.points_for_win
        if result == "D":
            return self.points_for_draw
        return self.points_for_loss


DEFAULT_POINT_SCHEDULE = PointSchedule()


class League(BaseModel):
    """A round-robin competition scoped to exactly one season."""

    id: str
    name: str
    season_id: str
    description: str = ""
    schedule: PointSchedule = Field(default_factory=PointSchedule)
    results_version: int = 0
    standings_version: int = 0


class Match(BaseModel):
    """A single fixture and, once decided, its result."""

    id: str | None = None
    league_id: str | None = None
    season_id: str | None = None
    home_team_id: str
    away_team_id: str
    kickoff: datetime
    home_score: int | None = Field(default=None, ge=0)
    away_score: int | None = Field(default=None, ge=0)
    status: MatchStatus = MatchStatus.SCHEDULED
    round_number: int = 0
    leg: Literal["first", "return"] = "first"

    @model_validator(mode="after")
    def _distinct_sides(self) -> Match:
        if self.home_team_id == self.away_team_id:
            msg = f"Team {self.home_team_id} cannot play itself"
            raise ValueError(msg)
        return self

    @property
    def is_decided(self) -> bool:
        return self.status == MatchStatus.COMPLETED


class TeamStanding(BaseModel):
    """One row of the league table for a (team, league, season).

    Always derived from the set of completed matches, never patched.
    """

    team_id: str
    matches_played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_difference: int = 0
    points: int = 0
    clean_sheets: int = 0
    form_points: int = 0
    form_string: str = ""  # most recent result last
    position: int = 0
