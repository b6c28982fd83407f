"""Repository pattern for database access.

Wraps SQLAlchemy async sessions. Nothing here commits: the caller's
``get_session`` block decides when a unit of work lands, so a multi-step
operation (delete stale rows, insert new ones, update matches) is atomic.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from decimal import Decimal

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fantalega.core.scheduler import Fixture
from fantalega.db.models import (
    CompetitionRow,
    F1RoundScoreRow,
    F1StandingRow,
    H2HStandingRow,
    LeagueRow,
    LineupRow,
    MatchRow,
    PlayerResultRow,
    RoundRow,
    TeamRow,
)
from fantalega.models.competition import CompetitionType, MatchResult
from fantalega.models.standings import F1Computation, H2HStanding


class Repository:
    """Async repository for all database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # --- League / Competition ---

    async def create_league(self, name: str, owner_id: int) -> LeagueRow:
        row = LeagueRow(name=name, owner_id=owner_id)
        self.session.add(row)
        await self.session.flush()
        return row

    async def create_competition(
        self,
        league_id: int,
        name: str,
        competition_type: CompetitionType | str = CompetitionType.H2H,
    ) -> CompetitionRow:
        row = CompetitionRow(
            league_id=league_id,
            name=name,
            type=str(CompetitionType(competition_type)),
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_competition(self, competition_id: int) -> CompetitionRow | None:
        """Get a competition with its league, rounds (by day index) and teams."""
        stmt = (
            select(CompetitionRow)
            .where(CompetitionRow.id == competition_id)
            .options(
                selectinload(CompetitionRow.league),
                selectinload(CompetitionRow.rounds),
                selectinload(CompetitionRow.teams),
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    # --- Rounds ---

    async def replace_rounds(
        self,
        competition_id: int,
        rounds: Sequence[dict],
    ) -> list[RoundRow]:
        """Drop a competition's calendar and write *rounds* as days 1..n.

        Each dict carries ``name``, ``start_date``, ``end_date``, ``lock_at``.
        Lineups, results and matches of the dropped rounds cascade away.
        """
        await self.session.execute(
            delete(RoundRow).where(RoundRow.competition_id == competition_id)
        )
        created: list[RoundRow] = []
        for idx, item in enumerate(rounds, start=1):
            row = RoundRow(
                competition_id=competition_id,
                day_index=idx,
                name=item.get("name") or f"Round {idx}",
                start_date=item.get("start_date"),
                end_date=item.get("end_date"),
                lock_at=item.get("lock_at"),
            )
            self.session.add(row)
            created.append(row)
        await self.session.execute(
            update(CompetitionRow)
            .where(CompetitionRow.id == competition_id)
            .values(total_rounds=len(created))
        )
        await self.session.flush()
        return created

    async def get_round(self, round_id: int) -> RoundRow | None:
        """Get a round with its competition and league loaded."""
        stmt = (
            select(RoundRow)
            .where(RoundRow.id == round_id)
            .options(selectinload(RoundRow.competition).selectinload(CompetitionRow.league))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_rounds(self, competition_id: int) -> list[RoundRow]:
        stmt = (
            select(RoundRow)
            .where(RoundRow.competition_id == competition_id)
            .order_by(RoundRow.day_index)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def set_round_lock(self, round_id: int, lock_at: datetime | None) -> RoundRow | None:
        row = await self.session.get(RoundRow, round_id)
        if row is not None:
            row.lock_at = lock_at
            await self.session.flush()
        return row

    # --- Teams ---

    async def create_team(
        self,
        competition_id: int,
        name: str,
        user_id: int | None = None,
    ) -> TeamRow:
        row = TeamRow(competition_id=competition_id, name=name, user_id=user_id)
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_team(self, team_id: int) -> TeamRow | None:
        return await self.session.get(TeamRow, team_id)

    async def get_teams(self, competition_id: int) -> list[TeamRow]:
        stmt = select(TeamRow).where(TeamRow.competition_id == competition_id).order_by(TeamRow.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # --- Lineups ---

    async def get_lineup(self, team_id: int, round_id: int) -> LineupRow | None:
        stmt = select(LineupRow).where(
            LineupRow.team_id == team_id,
            LineupRow.round_id == round_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert_lineup(self, team_id: int, round_id: int, entries: list | dict) -> LineupRow:
        """Create or replace the lineup for (team, round); at most one exists."""
        row = await self.get_lineup(team_id, round_id)
        if row is not None:
            row.entries = entries
        else:
            row = LineupRow(team_id=team_id, round_id=round_id, entries=entries)
            self.session.add(row)
        await self.session.flush()
        return row

    async def get_lineups_for_competition(self, competition_id: int) -> list[LineupRow]:
        stmt = (
            select(LineupRow)
            .join(TeamRow, TeamRow.id == LineupRow.team_id)
            .where(TeamRow.competition_id == competition_id)
            .order_by(LineupRow.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_lineups_for_round(self, round_id: int) -> list[LineupRow]:
        """All lineups submitted for a round, with their team loaded."""
        stmt = (
            select(LineupRow)
            .where(LineupRow.round_id == round_id)
            .options(selectinload(LineupRow.team))
            .order_by(LineupRow.team_id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # --- Player results ---

    async def get_player_results(self, round_ids: Iterable[int]) -> list[PlayerResultRow]:
        ids = list(round_ids)
        if not ids:
            return []
        stmt = (
            select(PlayerResultRow)
            .where(PlayerResultRow.round_id.in_(ids))
            .order_by(PlayerResultRow.round_id, PlayerResultRow.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def upsert_player_results(
        self,
        round_id: int,
        items: dict[str, tuple[str, Decimal]],
    ) -> int:
        """Write one result per normalized player, overwriting existing ones.

        Args:
            round_id: The round the results belong to.
            items: normalized player -> (display name, points).

        Returns:
            Number of rows created or updated.
        """
        existing = {row.player: row for row in await self.get_player_results([round_id])}
        for key, (display_name, points) in items.items():
            row = existing.get(key)
            if row is not None:
                row.display_name = display_name
                row.points = points
            else:
                self.session.add(
                    PlayerResultRow(
                        round_id=round_id,
                        player=key,
                        display_name=display_name,
                        points=points,
                    )
                )
        await self.session.flush()
        return len(items)

    async def insert_player_results(
        self,
        rows: Iterable[tuple[int, str, str, Decimal]],
    ) -> int:
        """Insert (round id, player key, display name, points) rows.

        Rows whose (round, player) already exists, in the table or earlier in
        *rows*, are skipped. Returns the number inserted.
        """
        pending = list(rows)
        existing = {
            (row.round_id, row.player)
            for row in await self.get_player_results({r[0] for r in pending})
        }
        inserted = 0
        for round_id, player, display_name, points in pending:
            if (round_id, player) in existing:
                continue
            existing.add((round_id, player))
            self.session.add(
                PlayerResultRow(
                    round_id=round_id,
                    player=player,
                    display_name=display_name,
                    points=points,
                )
            )
            inserted += 1
        await self.session.flush()
        return inserted

    async def delete_player_results(
        self,
        round_id: int,
        players: Iterable[str] | None = None,
    ) -> int:
        """Delete a round's results, or only those of *players*. Returns the count."""
        stmt = delete(PlayerResultRow).where(PlayerResultRow.round_id == round_id)
        if players is not None:
            stmt = stmt.where(PlayerResultRow.player.in_(list(players)))
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    # --- Matches ---

    async def get_matches(
        self,
        competition_id: int,
        round_id: int | None = None,
    ) -> list[MatchRow]:
        stmt = select(MatchRow).where(MatchRow.competition_id == competition_id)
        if round_id is not None:
            stmt = stmt.where(MatchRow.round_id == round_id)
        stmt = stmt.order_by(MatchRow.round_id, MatchRow.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def replace_matches(
        self,
        competition_id: int,
        round_ids: Sequence[int],
        fixtures: Sequence[Fixture],
    ) -> tuple[int, int]:
        """Delete every match in *round_ids*, then insert *fixtures*.

        Returns:
            (deleted, created) counts.
        """
        result = await self.session.execute(
            delete(MatchRow).where(
                MatchRow.competition_id == competition_id,
                MatchRow.round_id.in_(list(round_ids)),
            )
        )
        deleted = result.rowcount or 0
        for fx in fixtures:
            self.session.add(
                MatchRow(
                    competition_id=competition_id,
                    round_id=fx.round_id,
                    home_team_id=fx.home_team_id,
                    away_team_id=fx.away_team_id,
                )
            )
        await self.session.flush()
        return deleted, len(fixtures)

    async def update_match_scores(
        self,
        match_id: int,
        home_score: Decimal | None,
        away_score: Decimal | None,
        result: MatchResult | None,
    ) -> None:
        row = await self.session.get(MatchRow, match_id)
        if row is None:
            return
        row.home_score = home_score
        row.away_score = away_score
        row.result = str(result) if result is not None else None
        await self.session.flush()

    async def reset_matches(self, competition_id: int, round_id: int) -> int:
        """Clear scores and result of a round's matches. Returns the count."""
        result = await self.session.execute(
            update(MatchRow)
            .where(MatchRow.competition_id == competition_id, MatchRow.round_id == round_id)
            .values(home_score=None, away_score=None, result=None)
        )
        return result.rowcount or 0

    # --- Derived projections ---

    async def replace_f1_projection(
        self,
        competition_id: int,
        computation: F1Computation,
    ) -> None:
        """Rebuild f1_round_scores and f1_standings for a competition."""
        await self.session.execute(
            delete(F1RoundScoreRow).where(F1RoundScoreRow.competition_id == competition_id)
        )
        await self.session.execute(
            delete(F1StandingRow).where(F1StandingRow.competition_id == competition_id)
        )
        for summary in computation.rounds:
            for s in summary.scores:
                self.session.add(
                    F1RoundScoreRow(
                        competition_id=competition_id,
                        round_id=s.round_id,
                        team_id=s.team_id,
                        score=s.score,
                        position=s.position,
                        points=s.points,
                    )
                )
        for st in computation.standings:
            self.session.add(
                F1StandingRow(
                    competition_id=competition_id,
                    team_id=st.team_id,
                    position=st.position,
                    f1_points=st.f1_points,
                    rounds_played=st.rounds_played,
                    total_round_score=st.total_round_score,
                )
            )
        await self.session.flush()

    async def replace_h2h_projection(
        self,
        competition_id: int,
        standings: Sequence[H2HStanding],
    ) -> None:
        """Rebuild h2h_standings for a competition."""
        await self.session.execute(
            delete(H2HStandingRow).where(H2HStandingRow.competition_id == competition_id)
        )
        for st in standings:
            self.session.add(
                H2HStandingRow(
                    competition_id=competition_id,
                    team_id=st.team_id,
                    position=st.position,
                    played=st.played,
                    wins=st.wins,
                    losses=st.losses,
                    ties=st.ties,
                    points=st.points,
                    goals_for=st.goals_for,
                    goals_against=st.goals_against,
                    diff=st.diff,
                )
            )
        await self.session.flush()

    async def get_f1_round_scores(
        self,
        competition_id: int,
        round_id: int | None = None,
    ) -> list[F1RoundScoreRow]:
        stmt = select(F1RoundScoreRow).where(F1RoundScoreRow.competition_id == competition_id)
        if round_id is not None:
            stmt = stmt.where(F1RoundScoreRow.round_id == round_id)
        stmt = stmt.order_by(F1RoundScoreRow.round_id, F1RoundScoreRow.position)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_f1_standing_rows(self, competition_id: int) -> list[F1StandingRow]:
        stmt = (
            select(F1StandingRow)
            .where(F1StandingRow.competition_id == competition_id)
            .order_by(F1StandingRow.position)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_h2h_standing_rows(self, competition_id: int) -> list[H2HStandingRow]:
        stmt = (
            select(H2HStandingRow)
            .where(H2HStandingRow.competition_id == competition_id)
            .order_by(H2HStandingRow.position)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
