"""Tests for calendar setup, scheduling, resets and fixtures."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

from fantalega.core.calendar import (
    configure_calendar,
    list_fixtures,
    parse_datetime,
    reset_round,
    schedule_round_robin,
    update_round_lock,
)
from fantalega.core.errors import Forbidden, InsufficientRounds, InvalidInput
from fantalega.core.results import save_player_results
from fantalega.db.engine import create_engine, create_schema, get_session
from fantalega.db.repository import Repository
from fantalega.models.competition import CompetitionType

OWNER = 1


@pytest.fixture
async def engine() -> AsyncEngine:
    """Create an in-memory SQLite engine with all tables."""
    eng = create_engine("sqlite+aiosqlite:///:memory:")
    await create_schema(eng)
    yield eng  # type: ignore[misc]
    await eng.dispose()


@pytest.fixture
async def repo(engine: AsyncEngine) -> Repository:
    """Yield a repository with a session bound to the in-memory database."""
    async with get_session(engine) as session:
        yield Repository(session)  # type: ignore[misc]


async def _seed(repo: Repository, teams: int = 4) -> int:
    league = await repo.create_league("Serie Z", owner_id=OWNER)
    competition = await repo.create_competition(league.id, "Cup", CompetitionType.H2H)
    for i in range(teams):
        await repo.create_team(competition.id, f"Team {chr(ord('A') + i)}", user_id=10 + i)
    return competition.id


class TestParseDatetime:
    def test_blank_and_none_clear(self):
        assert parse_datetime(None, "lock_at") is None
        assert parse_datetime("  ", "lock_at") is None

    def test_iso_with_offset_is_stored_as_utc(self):
        parsed = parse_datetime("2026-03-01T15:00:00+02:00", "lock_at")
        assert parsed == datetime(2026, 3, 1, 13, 0)

    def test_aware_datetime(self):
        value = datetime(2026, 3, 1, 15, 0, tzinfo=UTC)
        assert parse_datetime(value, "lock_at") == datetime(2026, 3, 1, 15, 0)

    def test_garbage(self):
        with pytest.raises(InvalidInput):
            parse_datetime("next tuesday", "lock_at")
        with pytest.raises(InvalidInput):
            parse_datetime(12345, "lock_at")


class TestConfigureCalendar:
    async def test_creates_rounds(self, repo: Repository):
        competition_id = await _seed(repo)
        summary = await configure_calendar(
            repo,
            competition_id,
            OWNER,
            [{"name": "Opening"}, {"start_date": "2026-03-01", "end_date": "2026-03-02"}, {}],
        )
        assert summary.rounds_created == 3
        rounds = await repo.get_rounds(competition_id)
        assert [(r.day_index, r.name) for r in rounds] == [
            (1, "Opening"),
            (2, "Round 2"),
            (3, "Round 3"),
        ]
        assert rounds[1].start_date == datetime(2026, 3, 1)

    async def test_end_before_start(self, repo: Repository):
        competition_id = await _seed(repo)
        with pytest.raises(InvalidInput):
            await configure_calendar(
                repo,
                competition_id,
                OWNER,
                [{"start_date": "2026-03-02", "end_date": "2026-03-01"}],
            )

    async def test_empty(self, repo: Repository):
        competition_id = await _seed(repo)
        with pytest.raises(InvalidInput):
            await configure_calendar(repo, competition_id, OWNER, [])

    async def test_owner_only(self, repo: Repository):
        competition_id = await _seed(repo)
        with pytest.raises(Forbidden):
            await configure_calendar(repo, competition_id, 10, [{}])


class TestUpdateRoundLock:
    async def test_set_and_clear(self, repo: Repository):
        competition_id = await _seed(repo)
        await configure_calendar(repo, competition_id, OWNER, [{}])
        (rnd,) = await repo.get_rounds(competition_id)

        row = await update_round_lock(repo, rnd.id, OWNER, "2026-04-01T20:45:00")
        assert row.lock_at == datetime(2026, 4, 1, 20, 45)

        row = await update_round_lock(repo, rnd.id, OWNER, "")
        assert row.lock_at is None

    async def test_invalid_value(self, repo: Repository):
        competition_id = await _seed(repo)
        await configure_calendar(repo, competition_id, OWNER, [{}])
        (rnd,) = await repo.get_rounds(competition_id)
        with pytest.raises(InvalidInput):
            await update_round_lock(repo, rnd.id, OWNER, "soon")


class TestScheduleRoundRobin:
    async def test_four_teams(self, repo: Repository):
        competition_id = await _seed(repo, teams=4)
        await configure_calendar(repo, competition_id, OWNER, [{}] * 3)
        summary = await schedule_round_robin(repo, competition_id, OWNER)
        assert (summary.created, summary.deleted, summary.rounds_used) == (6, 0, 3)
        assert summary.has_bye is False

    async def test_rescheduling_replaces(self, repo: Repository):
        competition_id = await _seed(repo, teams=4)
        await configure_calendar(repo, competition_id, OWNER, [{}] * 3)
        await schedule_round_robin(repo, competition_id, OWNER)
        summary = await schedule_round_robin(repo, competition_id, OWNER)
        assert (summary.created, summary.deleted) == (6, 6)
        assert len(await repo.get_matches(competition_id)) == 6

    async def test_five_teams_need_five_rounds(self, repo: Repository):
        competition_id = await _seed(repo, teams=5)
        await configure_calendar(repo, competition_id, OWNER, [{}] * 4)
        with pytest.raises(InsufficientRounds) as exc_info:
            await schedule_round_robin(repo, competition_id, OWNER)
        assert exc_info.value.detail == {"needed": 5, "present": 4}

        await configure_calendar(repo, competition_id, OWNER, [{}] * 5)
        summary = await schedule_round_robin(repo, competition_id, OWNER)
        assert summary.created == 10
        assert summary.has_bye is True

    async def test_subset_of_teams(self, repo: Repository):
        competition_id = await _seed(repo, teams=4)
        await configure_calendar(repo, competition_id, OWNER, [{}] * 3)
        teams = await repo.get_teams(competition_id)
        summary = await schedule_round_robin(
            repo, competition_id, OWNER, team_ids=[teams[0].id, teams[1].id]
        )
        assert (summary.created, summary.rounds_used) == (1, 1)

    async def test_foreign_team(self, repo: Repository):
        competition_id = await _seed(repo, teams=2)
        await configure_calendar(repo, competition_id, OWNER, [{}])
        with pytest.raises(InvalidInput):
            await schedule_round_robin(repo, competition_id, OWNER, team_ids=[1, 999])

    async def test_table_seeded_after_scheduling(self, repo: Repository):
        competition_id = await _seed(repo, teams=4)
        await configure_calendar(repo, competition_id, OWNER, [{}] * 3)
        await schedule_round_robin(repo, competition_id, OWNER)
        rows = await repo.get_h2h_standing_rows(competition_id)
        assert len(rows) == 4
        assert all(r.played == 0 for r in rows)


class TestResetRound:
    async def test_clears_results_and_matches(self, repo: Repository):
        competition_id = await _seed(repo, teams=2)
        await configure_calendar(repo, competition_id, OWNER, [{}])
        await schedule_round_robin(repo, competition_id, OWNER)
        (rnd,) = await repo.get_rounds(competition_id)
        home, _ = await repo.get_teams(competition_id)
        await repo.upsert_lineup(home.id, rnd.id, ["alice"])
        await save_player_results(repo, rnd.id, OWNER, [{"player": "alice", "points": 5}])

        (match,) = await repo.get_matches(competition_id)
        assert match.result is not None

        summary = await reset_round(repo, rnd.id, OWNER)
        assert summary.deleted_player_results == 1
        assert summary.matches_reset == 1

        (match,) = await repo.get_matches(competition_id)
        assert (match.home_score, match.away_score, match.result) == (None, None, None)
        rows = await repo.get_h2h_standing_rows(competition_id)
        assert all(r.played == 0 for r in rows)


class TestListFixtures:
    async def test_grouped_by_round(self, repo: Repository):
        competition_id = await _seed(repo, teams=4)
        await configure_calendar(repo, competition_id, OWNER, [{}] * 3)
        await schedule_round_robin(repo, competition_id, OWNER)

        fixtures = await list_fixtures(repo, competition_id)
        assert [f.day_index for f in fixtures] == [1, 2, 3]
        assert all(len(f.matches) == 2 for f in fixtures)
        first = fixtures[0].matches[0]
        assert (first.home_team_name, first.away_team_name) == ("Team A", "Team D")
        assert first.result is None
        assert first.home_score is None

    async def test_scores_after_results(self, repo: Repository):
        competition_id = await _seed(repo, teams=2)
        await configure_calendar(repo, competition_id, OWNER, [{}])
        await schedule_round_robin(repo, competition_id, OWNER)
        (rnd,) = await repo.get_rounds(competition_id)
        _, away = await repo.get_teams(competition_id)
        await repo.upsert_lineup(away.id, rnd.id, ["bob"])
        await save_player_results(repo, rnd.id, OWNER, [{"player": "Bob", "points": "3.5"}])

        (round_fixtures,) = await list_fixtures(repo, competition_id)
        (match,) = round_fixtures.matches
        assert match.away_score == Decimal("3.5")
        assert match.result == "A"
