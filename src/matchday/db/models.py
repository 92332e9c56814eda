"""SQLAlchemy ORM models for the Matchday database.

Tables: seasons, teams, leagues, league_teams, matches, team_season_aggregates.
The aggregates table is a disposable cache of the standings: every row can
be rebuilt from the matches table at any time.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class SeasonRow(Base):
    __tablename__ = "seasons"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    starts_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)

    leagues: Mapped[list[LeagueRow]] = relationship(back_populates="season")


class TeamRow(Base):
    __tablename__ = "teams"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)


class LeagueRow(Base):
    __tablename__ = "leagues"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    season_id: Mapped[str] = mapped_column(ForeignKey("seasons.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    points_for_win: Mapped[int] = mapped_column(Integer, default=3)
    points_for_draw: Mapped[int] = mapped_column(Integer, default=1)
    points_for_loss: Mapped[int] = mapped_column(Integer, default=0)
    # Bumped on every result report; standings rows record the version they saw.
    results_version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # The results version the stored table was built from.
    standings_version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)

    season: Mapped[SeasonRow] = relationship(back_populates="leagues")
    roster: Mapped[list[LeagueTeamRow]] = relationship(
        back_populates="league", cascade="all, delete-orphan"
    )


class LeagueTeamRow(Base):
    __tablename__ = "league_teams"

    league_id: Mapped[str] = mapped_column(ForeignKey("leagues.id"), primary_key=True)
    team_id: Mapped[str] = mapped_column(ForeignKey("teams.id"), primary_key=True)

    league: Mapped[LeagueRow] = relationship(back_populates="roster")


class MatchRow(Base):
    __tablename__ = "matches"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    league_id: Mapped[str] = mapped_column(ForeignKey("leagues.id"), nullable=False)
    season_id: Mapped[str] = mapped_column(ForeignKey("seasons.id"), nullable=False)
    round_number: Mapped[int] = mapped_column(Integer, nullable=False)
    matchup_index: Mapped[int] = mapped_column(Integer, default=0)
    leg: Mapped[str] = mapped_column(String(10), default="first")
    home_team_id: Mapped[str] = mapped_column(ForeignKey("teams.id"), nullable=False)
    away_team_id: Mapped[str] = mapped_column(ForeignKey("teams.id"), nullable=False)
    kickoff: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    home_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    away_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="SCHEDULED")
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_now, onupdate=_now)

    __table_args__ = (
        CheckConstraint("home_team_id <> away_team_id", name="ck_match_distinct_teams"),
        CheckConstraint(
            "(home_score IS NULL OR home_score >= 0) AND (away_score IS NULL OR away_score >= 0)",
            name="ck_match_scores_non_negative",
        ),
        Index("ix_matches_league_season", "league_id", "season_id"),
        Index("ix_matches_kickoff", "kickoff"),
    )


class TeamSeasonAggregateRow(Base):
    __tablename__ = "team_season_aggregates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    team_id: Mapped[str] = mapped_column(ForeignKey("teams.id"), nullable=False)
    league_id: Mapped[str] = mapped_column(ForeignKey("leagues.id"), nullable=False)
    season_id: Mapped[str] = mapped_column(ForeignKey("seasons.id"), nullable=False)
    matches_played: Mapped[int] = mapped_column(Integer, default=0)
    won: Mapped[int] = mapped_column(Integer, default=0)
    drawn: Mapped[int] = mapped_column(Integer, default=0)
    lost: Mapped[int] = mapped_column(Integer, default=0)
    goals_for: Mapped[int] = mapped_column(Integer, default=0)
    goals_against: Mapped[int] = mapped_column(Integer, default=0)
    goal_difference: Mapped[int] = mapped_column(Integer, default=0)
    points: Mapped[int] = mapped_column(Integer, default=0)
    clean_sheets: Mapped[int] = mapped_column(Integer, default=0)
    form_points: Mapped[int] = mapped_column(Integer, default=0)
    form_string: Mapped[str] = mapped_column(String(20), default="")
    position: Mapped[int] = mapped_column(Integer, default=0)
    computed_version: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_now)

    __table_args__ = (
        UniqueConstraint("team_id", "league_id", "season_id", name="uq_team_league_season"),
        Index("ix_aggregates_league_season", "league_id", "season_id"),
    )
