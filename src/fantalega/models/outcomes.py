"""Structured outcomes returned by the admin and team-owner operations.

Every operation hands back either a summary model or, through
``fantalega.core.errors.guarded``, an ``Outcome`` carrying a typed error.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from fantalega.models.competition import MatchResult, RecomputeMode

T = TypeVar("T")


class ErrorKind(StrEnum):
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    PRECONDITION = "precondition"


class OutcomeError(BaseModel):
    kind: ErrorKind
    message: str
    detail: dict[str, object] = Field(default_factory=dict)


class Outcome(BaseModel, Generic[T]):
    """Success-with-summary or failure-with-reason."""

    ok: bool
    data: T | None = None
    error: OutcomeError | None = None


# --- Recompute ---


class F1Summary(BaseModel):
    rounds_processed: int = 0
    teams_evaluated: int = 0


class H2HSummary(BaseModel):
    matches_evaluated: int = 0
    matches_updated: int = 0
    matches_pending: int = 0


class RecomputeSummary(BaseModel):
    competition_id: int
    mode: RecomputeMode
    f1: F1Summary | None = None
    h2h: H2HSummary | None = None


# --- Calendar / schedule ---


class ScheduleSummary(BaseModel):
    competition_id: int
    created: int
    deleted: int
    rounds_used: int
    has_bye: bool


class CalendarSummary(BaseModel):
    competition_id: int
    rounds_created: int


class ResetSummary(BaseModel):
    round_id: int
    competition_id: int
    deleted_player_results: int
    matches_reset: int


class FixtureView(BaseModel):
    match_id: int
    round_id: int
    home_team_id: int
    home_team_name: str
    away_team_id: int
    away_team_name: str
    home_score: Decimal | None = None
    away_score: Decimal | None = None
    result: MatchResult | None = None


class RoundFixtures(BaseModel):
    round_id: int
    name: str
    day_index: int
    matches: list[FixtureView] = Field(default_factory=list)


# --- Results ---


class SaveResultsSummary(BaseModel):
    round_id: int
    count: int


class RoundResult(BaseModel):
    player: str
    display_name: str
    points: Decimal


class RoundPlayer(BaseModel):
    player: str
    original: str | None = None
    teams: list[str] = Field(default_factory=list)
    points: Decimal | None = None


class ImportPreviewRow(BaseModel):
    index: int
    round_id: int | None = None
    round_name: str | None = None
    team_name: str
    team_id: int | None = None
    player_name: str
    normalized_player: str | None = None
    points: Decimal | None = None
    valid: bool
    issues: list[str] = Field(default_factory=list)


class ImportReport(BaseModel):
    dry_run: bool
    overwrite: bool
    valid_count: int = 0
    invalid_count: int = 0
    preview_rows: list[ImportPreviewRow] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    applied: bool = False
    inserted: int = 0
    deleted: int = 0
    recompute: RecomputeSummary | None = None


# --- Lineups ---


class LineupView(BaseModel):
    id: int
    team_id: int
    round_id: int
    entries: list[str]
    updated_at: datetime | None = None
