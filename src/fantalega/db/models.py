"""SQLAlchemy ORM models for the Fantalega database.

Source tables: leagues, competitions, rounds, teams, lineups, player_results,
matches. Derived tables (f1_round_scores, f1_standings, h2h_standings) are
projections owned by the recompute engine: they are deleted and rebuilt
wholesale and never edited in place.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.sqlite import JSON
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# Points and scores: up to 10 integer digits, 2 decimals.
POINTS = Numeric(12, 2)


def _now() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class LeagueRow(Base):
    __tablename__ = "leagues"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    owner_id: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)

    competitions: Mapped[list[CompetitionRow]] = relationship(
        back_populates="league", cascade="all, delete-orphan", passive_deletes=True
    )


class CompetitionRow(Base):
    __tablename__ = "competitions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    league_id: Mapped[int] = mapped_column(
        ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(3), nullable=False)
    total_rounds: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)

    league: Mapped[LeagueRow] = relationship(back_populates="competitions")
    rounds: Mapped[list[RoundRow]] = relationship(
        back_populates="competition",
        order_by="RoundRow.day_index",
        passive_deletes=True,
    )
    teams: Mapped[list[TeamRow]] = relationship(
        back_populates="competition",
        order_by="TeamRow.id",
        passive_deletes=True,
    )


class RoundRow(Base):
    __tablename__ = "rounds"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    competition_id: Mapped[int] = mapped_column(
        ForeignKey("competitions.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    day_index: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    lock_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    competition: Mapped[CompetitionRow] = relationship(back_populates="rounds")

    __table_args__ = (
        UniqueConstraint("competition_id", "day_index", name="uq_round_day_index"),
    )


class TeamRow(Base):
    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    competition_id: Mapped[int] = mapped_column(
        ForeignKey("competitions.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)

    competition: Mapped[CompetitionRow] = relationship(back_populates="teams")
    lineups: Mapped[list[LineupRow]] = relationship(
        back_populates="team", passive_deletes=True
    )

    __table_args__ = (Index("ix_teams_competition_id", "competition_id"),)


class LineupRow(Base):
    """A team's declared players for one round.

    ``entries`` is stored raw: either a list of names or, for older rows,
    ``{"items": [...]}``. Read it through ``core.names.extract_entries``.
    """

    __tablename__ = "lineups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    team_id: Mapped[int] = mapped_column(
        ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )
    round_id: Mapped[int] = mapped_column(
        ForeignKey("rounds.id", ondelete="CASCADE"), nullable=False
    )
    entries: Mapped[Any] = mapped_column(JSON, nullable=False, default=list)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_now, onupdate=_now)

    team: Mapped[TeamRow] = relationship(back_populates="lineups")

    __table_args__ = (UniqueConstraint("team_id", "round_id", name="uq_lineup_team_round"),)


class PlayerResultRow(Base):
    """Points earned by one player in one round. ``player`` is the normalized name."""

    __tablename__ = "player_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    round_id: Mapped[int] = mapped_column(
        ForeignKey("rounds.id", ondelete="CASCADE"), nullable=False
    )
    player: Mapped[str] = mapped_column(String(100), nullable=False)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    points: Mapped[Decimal] = mapped_column(POINTS, nullable=False)

    __table_args__ = (
        UniqueConstraint("round_id", "player", name="uq_player_result_round_player"),
    )


class MatchRow(Base):
    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    competition_id: Mapped[int] = mapped_column(
        ForeignKey("competitions.id", ondelete="CASCADE"), nullable=False
    )
    round_id: Mapped[int] = mapped_column(
        ForeignKey("rounds.id", ondelete="CASCADE"), nullable=False
    )
    home_team_id: Mapped[int] = mapped_column(
        ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )
    away_team_id: Mapped[int] = mapped_column(
        ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )
    home_score: Mapped[Decimal | None] = mapped_column(POINTS, nullable=True)
    away_score: Mapped[Decimal | None] = mapped_column(POINTS, nullable=True)
    result: Mapped[str | None] = mapped_column(String(1), nullable=True)

    __table_args__ = (Index("ix_matches_competition_round", "competition_id", "round_id"),)


# --- Derived projections ---


class F1RoundScoreRow(Base):
    __tablename__ = "f1_round_scores"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    competition_id: Mapped[int] = mapped_column(
        ForeignKey("competitions.id", ondelete="CASCADE"), nullable=False
    )
    round_id: Mapped[int] = mapped_column(
        ForeignKey("rounds.id", ondelete="CASCADE"), nullable=False
    )
    team_id: Mapped[int] = mapped_column(
        ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )
    score: Mapped[Decimal] = mapped_column(POINTS, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("competition_id", "round_id", "team_id", name="uq_f1_round_score"),
    )


class F1StandingRow(Base):
    __tablename__ = "f1_standings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    competition_id: Mapped[int] = mapped_column(
        ForeignKey("competitions.id", ondelete="CASCADE"), nullable=False
    )
    team_id: Mapped[int] = mapped_column(
        ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    f1_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rounds_played: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_round_score: Mapped[Decimal] = mapped_column(POINTS, nullable=False)

    __table_args__ = (UniqueConstraint("competition_id", "team_id", name="uq_f1_standing"),)


class H2HStandingRow(Base):
    __tablename__ = "h2h_standings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    competition_id: Mapped[int] = mapped_column(
        ForeignKey("competitions.id", ondelete="CASCADE"), nullable=False
    )
    team_id: Mapped[int] = mapped_column(
        ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    played: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    losses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ties: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    goals_for: Mapped[Decimal] = mapped_column(POINTS, nullable=False)
    goals_against: Mapped[Decimal] = mapped_column(POINTS, nullable=False)
    diff: Mapped[Decimal] = mapped_column(POINTS, nullable=False)

    __table_args__ = (UniqueConstraint("competition_id", "team_id", name="uq_h2h_standing"),)
