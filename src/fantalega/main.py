"""Application wiring: settings, logging, database, and the service facade.

``Fantalega`` runs every operation in its own ``get_session`` unit of work and
applies the configured lineup size and F1 points table. Expected failures are
returned as ``Outcome(ok=False, ...)`` rather than raised.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncEngine

from fantalega.config import Settings
from fantalega.core import calendar, importer, lineups, recompute, results, standings
from fantalega.core.errors import guarded
from fantalega.db.engine import create_engine, create_schema, get_session
from fantalega.db.repository import Repository
from fantalega.models.competition import CompetitionInfo, RecomputeMode
from fantalega.models.outcomes import (
    CalendarSummary,
    H2HSummary,
    ImportReport,
    LineupView,
    Outcome,
    RecomputeSummary,
    ResetSummary,
    RoundFixtures,
    RoundPlayer,
    RoundResult,
    SaveResultsSummary,
    ScheduleSummary,
)
from fantalega.models.standings import F1Standing, H2HStanding

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.fantalega_log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def open_database(settings: Settings) -> AsyncEngine:
    """Create the engine and make sure every table exists."""
    engine = create_engine(settings.database_url)
    await create_schema(engine)
    logger.info("database_opened env=%s", settings.fantalega_env)
    return engine


class Fantalega:
    """Entry point for callers that already hold a verified user id."""

    def __init__(self, engine: AsyncEngine, settings: Settings | None = None) -> None:
        self.engine = engine
        self.settings = settings or Settings()

    async def _run(self, operation, *args, **kwargs) -> Outcome:
        async with get_session(self.engine) as session:
            outcome = await guarded(operation(Repository(session), *args, **kwargs))
            if not outcome.ok:
                # A rejected operation must not leave partial writes behind.
                await session.rollback()
            return outcome

    # --- Admin ---

    async def recompute(
        self,
        competition_id: int,
        user_id: int | None,
        mode: RecomputeMode | str = RecomputeMode.ALL,
    ) -> Outcome[RecomputeSummary]:
        return await self._run(
            recompute.recompute_competition,
            competition_id,
            user_id,
            mode,
            points_table=self.settings.fantalega_f1_points,
        )

    async def resolve_round(self, round_id: int, user_id: int | None) -> Outcome[H2HSummary]:
        return await self._run(recompute.resolve_round, round_id, user_id)

    async def describe_competition(
        self, competition_id: int, user_id: int | None
    ) -> Outcome[CompetitionInfo]:
        return await self._run(recompute.describe_competition, competition_id, user_id)

    async def configure_calendar(
        self, competition_id: int, user_id: int | None, rounds: Sequence[dict]
    ) -> Outcome[CalendarSummary]:
        return await self._run(
            calendar.configure_calendar,
            competition_id,
            user_id,
            rounds,
            points_table=self.settings.fantalega_f1_points,
        )

    async def update_round_lock(
        self, round_id: int, user_id: int | None, lock_at: datetime | str | None
    ) -> Outcome:
        return await self._run(calendar.update_round_lock, round_id, user_id, lock_at)

    async def schedule(
        self,
        competition_id: int,
        user_id: int | None,
        team_ids: Sequence[int] | None = None,
        cycles: int = 1,
    ) -> Outcome[ScheduleSummary]:
        return await self._run(
            calendar.schedule_round_robin,
            competition_id,
            user_id,
            team_ids,
            cycles,
            points_table=self.settings.fantalega_f1_points,
        )

    async def reset_round(self, round_id: int, user_id: int | None) -> Outcome[ResetSummary]:
        return await self._run(
            calendar.reset_round,
            round_id,
            user_id,
            points_table=self.settings.fantalega_f1_points,
        )

    async def save_results(
        self, round_id: int, user_id: int | None, items: list[dict]
    ) -> Outcome[SaveResultsSummary]:
        return await self._run(
            results.save_player_results,
            round_id,
            user_id,
            items,
            points_table=self.settings.fantalega_f1_points,
        )

    async def round_players(
        self, round_id: int, user_id: int | None
    ) -> Outcome[list[RoundPlayer]]:
        return await self._run(results.list_round_players, round_id, user_id)

    async def import_results(
        self,
        competition_id: int,
        user_id: int | None,
        rows: Sequence[dict],
        overwrite: bool = False,
        dry_run: bool = False,
    ) -> Outcome[ImportReport]:
        return await self._run(
            importer.import_results,
            competition_id,
            user_id,
            rows,
            overwrite=overwrite,
            dry_run=dry_run,
            points_table=self.settings.fantalega_f1_points,
        )

    # --- Team owners ---

    async def submit_lineup(
        self,
        team_id: int,
        round_id: int,
        user_id: int | None,
        entries: list[str],
        override: bool = False,
    ) -> Outcome[LineupView]:
        return await self._run(
            lineups.submit_lineup,
            team_id,
            round_id,
            user_id,
            entries,
            override=override,
            max_entries=self.settings.fantalega_lineup_max_entries,
            points_table=self.settings.fantalega_f1_points,
        )

    # --- Public reads ---

    async def lineup(self, team_id: int, round_id: int) -> Outcome[LineupView | None]:
        return await self._run(lineups.get_lineup, team_id, round_id)

    async def round_results(self, round_id: int) -> Outcome[list[RoundResult]]:
        return await self._run(results.get_round_results, round_id)

    async def fixtures(self, competition_id: int) -> Outcome[list[RoundFixtures]]:
        return await self._run(calendar.list_fixtures, competition_id)

    async def f1_standings(self, competition_id: int) -> Outcome[list[F1Standing]]:
        return await self._run(
            standings.f1_standings, competition_id, self.settings.fantalega_f1_points
        )

    async def h2h_standings(self, competition_id: int) -> Outcome[list[H2HStanding]]:
        return await self._run(standings.h2h_standings, competition_id)


async def create_app(settings: Settings | None = None) -> Fantalega:
    """Load settings, configure logging and open the database."""
    settings = settings or Settings()
    configure_logging(settings)
    engine = await open_database(settings)
    return Fantalega(engine, settings)
