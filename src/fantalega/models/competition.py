"""Competition, team and match models consumed by the scoring engines.

These are plain snapshots of stored data. The engines never see ORM rows, so
the same code scores live data, tests, and import previews.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, Field


class CompetitionType(StrEnum):
    """How a competition turns round scores into a table."""

    H2H = "H2H"
    F1 = "F1"


class MatchResult(StrEnum):
    """Outcome code stored on a match row."""

    HOME = "H"
    AWAY = "A"
    DRAW = "D"


class RecomputeMode(StrEnum):
    F1 = "f1"
    H2H = "h2h"
    ALL = "all"


class TeamRef(BaseModel):
    """A team as the standings engines need it: identity plus tie-break name."""

    id: int
    name: str


class RoundInfo(BaseModel):
    id: int
    name: str
    day_index: int
    start_date: datetime | None = None
    end_date: datetime | None = None
    lock_at: datetime | None = None


class RoundContext(BaseModel):
    """Everything needed to score one round.

    ``results`` maps normalized player name to points. ``lineups`` maps team id
    to the extracted (raw, unnormalized) lineup entries for this round.
    """

    round_id: int
    results: dict[str, Decimal] = Field(default_factory=dict)
    lineups: dict[int, list[str]] = Field(default_factory=dict)


class MatchRef(BaseModel):
    """A scheduled match with whatever scores are currently stored."""

    id: int
    round_id: int
    home_team_id: int
    away_team_id: int
    home_score: Decimal | None = None
    away_score: Decimal | None = None
    result: MatchResult | None = None


class CompetitionInfo(BaseModel):
    id: int
    name: str
    league_id: int
    type: CompetitionType
    rounds: list[RoundInfo] = Field(default_factory=list)
