"""Standings models: output types from the F1 and H2H engines.

All of these are derived data: they can always be rebuilt from player
results, lineups and matches.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from fantalega.models.competition import MatchResult


class TeamRoundScore(BaseModel):
    """One team's score and awarded F1 points in one round."""

    round_id: int
    team_id: int
    team_name: str
    score: Decimal
    position: int
    points: int


class F1RoundSummary(BaseModel):
    round_id: int
    scores: list[TeamRoundScore] = Field(default_factory=list)


class F1Standing(BaseModel):
    team_id: int
    team_name: str
    position: int = 0
    f1_points: int = 0
    rounds_played: int = 0
    total_round_score: Decimal = Decimal(0)


class F1Computation(BaseModel):
    """Full output of one F1 pass: per-round audit plus the aggregate table."""

    rounds: list[F1RoundSummary] = Field(default_factory=list)
    standings: list[F1Standing] = Field(default_factory=list)

    @property
    def rounds_processed(self) -> int:
        return len(self.rounds)


class MatchOutcome(BaseModel):
    """A match with a known result, as folded into the H2H table."""

    home_team_id: int
    away_team_id: int
    home_score: Decimal
    away_score: Decimal
    result: MatchResult


class ResolvedMatch(MatchOutcome):
    """Freshly computed scores for a stored match.

    ``changed`` is True when any of the scores or the result code differ
    from what is currently stored on the match row.
    """

    match_id: int
    round_id: int
    changed: bool


class H2HStanding(BaseModel):
    team_id: int
    team_name: str
    position: int = 0
    played: int = 0
    wins: int = 0
    losses: int = 0
    ties: int = 0
    points: int = 0
    goals_for: Decimal = Decimal(0)
    goals_against: Decimal = Decimal(0)
    diff: Decimal = Decimal(0)
