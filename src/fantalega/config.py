"""Application settings via pydantic-settings. Loads from environment and .env file."""

from __future__ import annotations

from pydantic import model_validator
from pydantic_settings import BaseSettings

# Formula-1 style points, indexed by finishing position in a round.
DEFAULT_F1_POINTS: list[int] = [25, 18, 15, 12, 10, 8, 6, 4, 2, 1]

DEFAULT_LINEUP_MAX_ENTRIES = 12


class Settings(BaseSettings):
    """Fantalega configuration.

    All values can be overridden via environment variables or .env file.
    """

    # Database
    database_url: str = "sqlite+aiosqlite:///fantalega.db"

    # Environment
    fantalega_env: str = "development"

    # Lineups
    fantalega_lineup_max_entries: int = DEFAULT_LINEUP_MAX_ENTRIES

    # Scoring
    fantalega_f1_points: list[int] = DEFAULT_F1_POINTS

    # Logging
    fantalega_log_level: str = "INFO"

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def _check_lineup_bounds(self) -> Settings:
        if self.fantalega_lineup_max_entries < 1:
            msg = "FANTALEGA_LINEUP_MAX_ENTRIES must be at least 1"
            raise ValueError(msg)
        return self

    @model_validator(mode="after")
    def _check_points_table(self) -> Settings:
        """Reject tables that would reward a lower finish more than a higher one."""
        table = self.fantalega_f1_points
        if not table:
            raise ValueError("FANTALEGA_F1_POINTS must not be empty")
        if any(p < 0 for p in table):
            raise ValueError("FANTALEGA_F1_POINTS must not contain negative values")
        if any(later > earlier for earlier, later in zip(table, table[1:])):
            raise ValueError("FANTALEGA_F1_POINTS must be non-increasing")
        return self
