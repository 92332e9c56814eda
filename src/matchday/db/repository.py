"""Repository pattern for database access.

Wraps SQLAlchemy async sessions. Matches are created in bulk by the fixture
generator and mutated only by result reports. Standings rows are replaced
wholesale, never patched.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from matchday.core.fixtures import Fixture
from matchday.db.models import (
    LeagueRow,
    LeagueTeamRow,
    MatchRow,
    SeasonRow,
    TeamRow,
    TeamSeasonAggregateRow,
)
from matchday.models.league import MatchStatus, PointSchedule, TeamStanding

# Statuses a withdrawn team's fixtures can still be cancelled from.
_OPEN_STATUSES = (MatchStatus.SCHEDULED.value, MatchStatus.POSTPONED.value)


class Repository:
    """Async repository for all database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # --- Season / Team directory ---

    async def create_season(self, name: str, starts_at: datetime, ends_at: datetime) -> SeasonRow:
        row = SeasonRow(name=name, starts_at=starts_at, ends_at=ends_at)
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_season(self, season_id: str) -> SeasonRow | None:
        return await self.session.get(SeasonRow, season_id)

    async def create_team(self, name: str) -> TeamRow:
        row = TeamRow(name=name)
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_teams(self, team_ids: Iterable[str]) -> list[TeamRow]:
        """Fetch the teams with the given IDs in one query (missing IDs are skipped)."""
        ids = list(team_ids)
        if not ids:
            return []
        result = await self.session.execute(select(TeamRow).where(TeamRow.id.in_(ids)))
        return list(result.scalars().all())

    # --- League ---

    async def create_league(
        self,
        season_id: str,
        name: str,
        description: str = "",
        schedule: PointSchedule | None = None,
    ) -> LeagueRow:
        schedule = schedule or PointSchedule()
        row = LeagueRow(
            season_id=season_id,
            name=name,
            description=description,
            points_for_win=schedule.points_for_win,
            points_for_draw=schedule.points_for_draw,
            points_for_loss=schedule.points_for_loss,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_league(self, league_id: str) -> LeagueRow | None:
        """Get a league by ID."""
        return await self.session.get(LeagueRow, league_id)

    async def add_to_roster(self, league_id: str, team_ids: Iterable[str]) -> None:
        self.session.add_all(LeagueTeamRow(league_id=league_id, team_id=tid) for tid in team_ids)
        await self.session.flush()

    async def get_roster(self, league_id: str) -> list[str]:
        """Team IDs registered to a league, sorted."""
        stmt = (
            select(LeagueTeamRow.team_id)
            .where(LeagueTeamRow.league_id == league_id)
            .order_by(LeagueTeamRow.team_id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_results_version(self, league_id: str) -> int:
        """Read the results version straight from the database, bypassing the identity map."""
        stmt = select(LeagueRow.results_version).where(LeagueRow.id == league_id)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def bump_results_version(self, league_id: str) -> int:
        await self.session.execute(
            update(LeagueRow)
            .where(LeagueRow.id == league_id)
            .values(results_version=LeagueRow.results_version + 1)
        )
        return await self.get_results_version(league_id)

    async def claim_standings(self, league_id: str, version: int) -> bool:
        """Stamp the league's table with *version* if no result landed since it was read.

        The check and the write are one UPDATE, so SQLite takes its write lock
        here and no other transaction can commit a result until this one ends.
        Returns False when the results version has moved on.
        """
        result = await self.session.execute(
            update(LeagueRow)
            .where(LeagueRow.id == league_id, LeagueRow.results_version == version)
            .values(standings_version=version)
        )
        return result.rowcount == 1

    async def delete_league(self, league_id: str) -> None:
        """Delete a league with its fixtures, roster and standings."""
        await self.session.execute(
            delete(TeamSeasonAggregateRow).where(TeamSeasonAggregateRow.league_id == league_id)
        )
        await self.session.execute(delete(MatchRow).where(MatchRow.league_id == league_id))
        league = await self.get_league(league_id)
        if league is not None:
            await self.session.delete(league)
        await self.session.flush()

    # --- Matches ---

    async def bulk_create_matches(
        self,
        league_id: str,
        season_id: str,
        fixtures: Sequence[Fixture],
    ) -> list[MatchRow]:
        rows = [
            MatchRow(
                league_id=league_id,
                season_id=season_id,
                round_number=f.round_number,
                matchup_index=f.matchup_index,
                leg=f.leg,
                home_team_id=f.home_team_id,
                away_team_id=f.away_team_id,
                kickoff=f.kickoff,
                status=MatchStatus.SCHEDULED.value,
            )
            for f in fixtures
        ]
        self.session.add_all(rows)
        await self.session.flush()
        return rows

    async def get_match(self, match_id: str) -> MatchRow | None:
        return await self.session.get(MatchRow, match_id)

    async def get_matches_for_league(
        self,
        league_id: str,
        status: MatchStatus | None = None,
    ) -> list[MatchRow]:
        """Get all matches for a league, optionally filtered by status.

        Returns:
            Matches ordered by kickoff, round_number and matchup_index.
        """
        stmt = select(MatchRow).where(MatchRow.league_id == league_id)
        if status is not None:
            stmt = stmt.where(MatchRow.status == status.value)
        stmt = stmt.order_by(MatchRow.kickoff, MatchRow.round_number, MatchRow.matchup_index)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_matches_by_status(self, league_id: str) -> dict[str, int]:
        stmt = (
            select(MatchRow.status, func.count())
            .where(MatchRow.league_id == league_id)
            .group_by(MatchRow.status)
        )
        result = await self.session.execute(stmt)
        counts = {s.value: 0 for s in MatchStatus}
        counts.update({status: count for status, count in result.all()})
        return counts

    async def cancel_open_matches_for_team(self, league_id: str, team_id: str) -> int:
        """Cancel a team's scheduled and postponed fixtures. Returns the count."""
        stmt = (
            update(MatchRow)
            .where(
                MatchRow.league_id == league_id,
                (MatchRow.home_team_id == team_id) | (MatchRow.away_team_id == team_id),
                MatchRow.status.in_(_OPEN_STATUSES),
            )
            .values(status=MatchStatus.CANCELLED.value)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    # --- Standings ---

    async def replace_standings(
        self,
        league_id: str,
        season_id: str,
        standings: Sequence[TeamStanding],
        version: int,
    ) -> None:
        """Drop the stored table for a league and write *standings* in its place."""
        await self.session.execute(
            delete(TeamSeasonAggregateRow).where(
                TeamSeasonAggregateRow.league_id == league_id,
                TeamSeasonAggregateRow.season_id == season_id,
            )
        )
        self.session.add_all(
            TeamSeasonAggregateRow(
                league_id=league_id,
                season_id=season_id,
                computed_version=version,
                **s.model_dump(),
            )
            for s in standings
        )
        await self.session.flush()

    async def get_standings(self, league_id: str) -> list[TeamSeasonAggregateRow]:
        stmt = (
            select(TeamSeasonAggregateRow)
            .where(TeamSeasonAggregateRow.league_id == league_id)
            .order_by(TeamSeasonAggregateRow.position)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
