"""Double round-robin fixture generation.

Generates a calendar where every team meets every other team twice, once
at home and once away. Uses the circle method (polygon scheduling) for
balanced rounds.

Terminology:
  - **round**: a set of fixtures where no team appears twice.  With 4 teams
    a round has 2 fixtures.
  - **leg**: one complete round-robin pass.  The first leg pairs every two
    teams once; the return leg repeats it with home and away swapped.
    With 4 teams a leg is 3 rounds × 2 fixtures = 6 fixtures, 12 in total.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import UTC, date, datetime
from typing import Literal

from matchday.core.errors import DuplicateTeam, InsufficientTeams, InvalidWindow

BYE = None


@dataclass(frozen=True)
class Fixture:
    """A single scheduled match between two teams."""

    round_number: int
    matchup_index: int
    home_team_id: str
    away_team_id: str
    kickoff: datetime
    leg: Literal["first", "return"] = "first"


def _as_datetime(value: date | datetime) -> datetime:
    """Naive UTC, matching the naive DateTime columns kickoffs are stored in."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(UTC).replace(tzinfo=None)
        return value
    return datetime.combine(value, datetime.min.time())


def validate_roster(team_ids: Sequence[str]) -> None:
    """Reject rosters that cannot form a round-robin."""
    if len(team_ids) < 2:
        raise InsufficientTeams(len(team_ids))
    seen: set[str] = set()
    for tid in team_ids:
        if tid in seen:
            raise DuplicateTeam(tid)
        seen.add(tid)


def single_round_robin(team_ids: Sequence[str]) -> list[list[tuple[str, str]]]:
    """Pair every two teams exactly once, grouped into rounds.

    One seat stays fixed while the remaining ``m = n - 1`` slots rotate.  In
    round ``r`` the fixed seat meets slot ``r`` and, for ``k = 1..n/2-1``,
    slot ``(r + k) % m`` meets slot ``(r - k) % m``.  Two rotating slots
    ``a`` and ``b`` meet only in the round where ``a + b ≡ 2r (mod m)``;
    ``m`` is odd, so that round is unique and no pair is ever repeated.

    Venues follow the canonical (de Werra) orientation: the fixed seat is
    at home in even rounds, and pairing ``k`` is hosted by the ``r + k``
    slot when ``k`` is odd and by the ``r - k`` slot when ``k`` is even.
    A rotating slot is then at home exactly when it sits an odd distance
    ahead of slot ``r``, so every team alternates home and away with at
    most one repeated venue per leg, next to its game against the fixed
    seat.  With an odd count the bye takes the fixed seat, which removes
    that repeat altogether.

    Returns:
        One list of ``(home_team_id, away_team_id)`` tuples per round.
    """
    slots: list[str | None] = list(team_ids)
    if len(slots) % 2:
        slots.insert(0, BYE)
    n = len(slots)
    fixed = slots[0]
    rotating = slots[1:]
    m = n - 1

    rounds: list[list[tuple[str, str]]] = []
    for r in range(m):
        pairs: list[tuple[str | None, str | None]] = []
        opponent = rotating[r]
        pairs.append((fixed, opponent) if r % 2 == 0 else (opponent, fixed))
        for k in range(1, n // 2):
            ahead, behind = rotating[(r + k) % m], rotating[(r - k) % m]
            pairs.append((ahead, behind) if k % 2 else (behind, ahead))
        rounds.append([(h, a) for h, a in pairs if h is not BYE and a is not BYE])
    return rounds


def _spread(start: datetime, end: datetime, count: int) -> list[datetime]:
    """Evenly spaced kickoffs in ``[start, end)``, one per fixture."""
    if count == 0:
        return []
    step = (end - start) / count
    return [start + step * i for i in range(count)]


def generate_fixtures(
    team_ids: Sequence[str],
    season_start: date | datetime,
    season_end: date | datetime,
) -> list[Fixture]:
    """Generate a double round-robin calendar inside a season window.

    The first leg fills ``[season_start, midpoint)`` and the mirrored
    return leg fills ``[midpoint, season_end)``, both in round order, so
    kickoffs never decrease within a leg.

    With N teams the result holds N·(N-1) fixtures: every unordered pair
    exactly twice, once with each team at home.

    Args:
        team_ids: Distinct team IDs, at least two.
        season_start: First possible kickoff.
        season_end: End of the window (exclusive).  Timezone-aware bounds
            are converted to naive UTC before use.

    Returns:
        First-leg fixtures followed by return-leg fixtures.

    Raises:
        InsufficientTeams: fewer than two teams.
        DuplicateTeam: a team ID repeats.
        InvalidWindow: ``season_start`` is not before ``season_end``.
    """
    validate_roster(team_ids)
    start = _as_datetime(season_start)
    end = _as_datetime(season_end)
    if start >= end:
        raise InvalidWindow(start, end)
    midpoint = start + (end - start) / 2

    rounds = single_round_robin(team_ids)
    first_pairs = [
        (round_idx + 1, idx, home, away)
        for round_idx, pairs in enumerate(rounds)
        for idx, (home, away) in enumerate(pairs)
    ]

    first_leg = [
        Fixture(
            round_number=round_number,
            matchup_index=idx,
            home_team_id=home,
            away_team_id=away,
            kickoff=kickoff,
        )
        for (round_number, idx, home, away), kickoff in zip(
            first_pairs, _spread(start, midpoint, len(first_pairs)), strict=True
        )
    ]

    offset = len(rounds)
    return_kickoffs = _spread(midpoint, end, len(first_leg))
    return_leg = [
        replace(
            f,
            round_number=f.round_number + offset,
            home_team_id=f.away_team_id,
            away_team_id=f.home_team_id,
            kickoff=kickoff,
            leg="return",
        )
        for f, kickoff in zip(first_leg, return_kickoffs, strict=True)
    ]

    return first_leg + return_leg
