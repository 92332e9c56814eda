"""Domain errors raised by the scheduling and standings engine.

Validation errors are raised before anything is written. Consistency
errors point at a persistence defect upstream and are surfaced, never
dropped. The engine performs no retries.
"""

from __future__ import annotations

from collections.abc import Iterable


class MatchdayError(Exception):
    """Base class for all engine errors."""


class InputValidationError(MatchdayError, ValueError):
    """Caller-supplied input was rejected.

    ``field`` names the offending input so the API layer can render an
    actionable message.
    """

    def __init__(self, message: str, *, field: str | None = None, value: object = None) -> None:
        super().__init__(message)
        self.field = field
        self.value = value


class InsufficientTeams(InputValidationError):
    def __init__(self, count: int) -> None:
        super().__init__(
            f"At least 2 teams are required, got {count}",
            field="team_ids",
            value=count,
        )


class DuplicateTeam(InputValidationError):
    def __init__(self, team_id: str) -> None:
        super().__init__(f"Team {team_id} appears more than once", field="team_ids", value=team_id)
        self.team_id = team_id


class InvalidWindow(InputValidationError):
    def __init__(self, start: object, end: object) -> None:
        super().__init__(
            f"Season start {start} must be before season end {end}",
            field="season_start",
            value=(start, end),
        )


class InvalidScore(InputValidationError):
    pass


class InvalidTransition(InputValidationError):
    def __init__(self, match_id: str, from_status: str, to_status: str) -> None:
        super().__init__(
            f"Match {match_id} cannot move from {from_status} to {to_status}",
            field="status",
            value=to_status,
        )
        self.match_id = match_id
        self.from_status = from_status
        self.to_status = to_status


class UnknownTeam(InputValidationError):
    def __init__(self, team_ids: Iterable[str]) -> None:
        missing = sorted(team_ids)
        super().__init__(f"Unknown team(s): {', '.join(missing)}", field="team_ids", value=missing)
        self.team_ids = missing


class ConsistencyError(MatchdayError):
    """Stored data contradicts itself (e.g. a match for a team outside the roster)."""


class StaleStandingsError(ConsistencyError):
    """Results changed while standings were being recomputed."""

    def __init__(self, league_id: str, expected: int, actual: int) -> None:
        super().__init__(
            f"League {league_id} results moved from version {expected} to {actual} "
            "during recomputation"
        )
        self.league_id = league_id
        self.expected = expected
        self.actual = actual


class NotFoundError(MatchdayError, LookupError):
    """A referenced record does not exist."""


class UnknownLeague(NotFoundError):
    pass


class UnknownSeason(NotFoundError):
    pass


class UnknownMatch(NotFoundError):
    pass
