"""Application settings via pydantic-settings. Loads from environment and .env file."""

from __future__ import annotations

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

from matchday.models.league import PointSchedule


class Settings(BaseSettings):
    """Matchday application configuration.

    All values can be overridden via environment variables or .env file.
    """

    # Database
    database_url: str = "sqlite+aiosqlite:///matchday.db"

    # Environment
    matchday_env: str = "development"

    # Default point schedule for leagues created without one
    matchday_points_for_win: int = Field(default=3, ge=0)
    matchday_points_for_draw: int = Field(default=1, ge=0)
    matchday_points_for_loss: int = Field(default=0, ge=0)

    # Standings
    matchday_form_length: int = Field(default=5, ge=1)
    matchday_recompute_budget_seconds: float = Field(default=0.0, ge=0)  # 0 = unlimited

    # Logging
    matchday_log_level: str = "INFO"

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def _check_point_order(self) -> Settings:
        """A win must never be worth less than a draw, nor a draw less than a loss."""
        if not (
            self.matchday_points_for_win
            >= self.matchday_points_for_draw
            >= self.matchday_points_for_loss
        ):
            msg = (
                "Default point schedule must satisfy win >= draw >= loss, got "
                f"{self.matchday_points_for_win}/{self.matchday_points_for_draw}/"
                f"{self.matchday_points_for_loss}"
            )
            raise ValueError(msg)
        return self

    def default_point_schedule(self) -> PointSchedule:
        return PointSchedule(
            points_for_win=self.matchday_points_for_win,
            points_for_draw=self.matchday_points_for_draw,
            points_for_loss=self.matchday_points_for_loss,
        )

    def recompute_budget(self) -> float | None:
        """Wall-clock budget for one standings recomputation, or None if unlimited."""
        return self.matchday_recompute_budget_seconds or None
