"""Tests for lineup submission and the round lock."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

from fantalega.core.errors import Forbidden, InvalidInput, NotAuthenticated, NotFound
from fantalega.core.lineups import clean_entries, get_lineup, submit_lineup
from fantalega.db.engine import create_engine, create_schema, get_session
from fantalega.db.repository import Repository
from fantalega.models.competition import CompetitionType

OWNER = 1
COACH = 2

LOCK = datetime(2026, 3, 1, 15, 0)


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


async def _seed(repo: Repository) -> dict:
    league = await repo.create_league("Serie Z", owner_id=OWNER)
    competition = await repo.create_competition(league.id, "Sprint", CompetitionType.F1)
    (rnd,) = await repo.replace_rounds(competition.id, [{"lock_at": LOCK}])
    team = await repo.create_team(competition.id, "Reds", user_id=COACH)
    owners_team = await repo.create_team(competition.id, "Admins", user_id=OWNER)

    other = await repo.create_competition(league.id, "Other", CompetitionType.F1)
    (other_round,) = await repo.replace_rounds(other.id, [{}])
    return {
        "competition_id": competition.id,
        "round_id": rnd.id,
        "team_id": team.id,
        "owners_team_id": owners_team.id,
        "other_round_id": other_round.id,
    }


BEFORE = LOCK.replace(tzinfo=UTC) - timedelta(minutes=1)
AFTER = LOCK.replace(tzinfo=UTC)


class TestCleanEntries:
    def test_trims_and_drops_blanks(self):
        assert clean_entries([" Alice ", "", "  ", 7, None, "Bob"]) == ["Alice", "Bob"]

    def test_not_a_list(self):
        with pytest.raises(InvalidInput):
            clean_entries("Alice")

    def test_empty(self):
        with pytest.raises(InvalidInput):
            clean_entries(["", " "])

    def test_too_many(self):
        clean_entries([f"p{i}" for i in range(12)])
        with pytest.raises(InvalidInput):
            clean_entries([f"p{i}" for i in range(13)])

    def test_custom_limit(self):
        with pytest.raises(InvalidInput):
            clean_entries(["a", "b"], max_entries=1)


class TestSubmitLineup:
    async def test_before_lock(self, repo: Repository):
        ids = await _seed(repo)
        view = await submit_lineup(
            repo, ids["team_id"], ids["round_id"], COACH, [" Alice", "Bob "], now=BEFORE
        )
        assert view.entries == ["Alice", "Bob"]
        stored = await get_lineup(repo, ids["team_id"], ids["round_id"])
        assert stored.entries == ["Alice", "Bob"]

    async def test_replaces_existing(self, repo: Repository):
        ids = await _seed(repo)
        await submit_lineup(repo, ids["team_id"], ids["round_id"], COACH, ["A"], now=BEFORE)
        await submit_lineup(repo, ids["team_id"], ids["round_id"], COACH, ["B"], now=BEFORE)
        assert (await get_lineup(repo, ids["team_id"], ids["round_id"])).entries == ["B"]

    async def test_locked_at_lock_time(self, repo: Repository):
        ids = await _seed(repo)
        with pytest.raises(Forbidden, match="Round locked"):
            await submit_lineup(repo, ids["team_id"], ids["round_id"], COACH, ["A"], now=AFTER)

    async def test_override_by_league_owner(self, repo: Repository):
        ids = await _seed(repo)
        view = await submit_lineup(
            repo, ids["owners_team_id"], ids["round_id"], OWNER, ["A"], override=True, now=AFTER
        )
        assert view.entries == ["A"]

    async def test_override_by_coach_refused(self, repo: Repository):
        ids = await _seed(repo)
        with pytest.raises(Forbidden, match="Override"):
            await submit_lineup(
                repo, ids["team_id"], ids["round_id"], COACH, ["A"], override=True, now=BEFORE
            )

    async def test_not_team_owner(self, repo: Repository):
        ids = await _seed(repo)
        with pytest.raises(Forbidden):
            await submit_lineup(repo, ids["team_id"], ids["round_id"], 99, ["A"], now=BEFORE)

    async def test_no_user(self, repo: Repository):
        ids = await _seed(repo)
        with pytest.raises(NotAuthenticated):
            await submit_lineup(repo, ids["team_id"], ids["round_id"], None, ["A"])

    async def test_round_of_other_competition(self, repo: Repository):
        ids = await _seed(repo)
        with pytest.raises(InvalidInput):
            await submit_lineup(repo, ids["team_id"], ids["other_round_id"], COACH, ["A"])

    async def test_unknown_team(self, repo: Repository):
        ids = await _seed(repo)
        with pytest.raises(NotFound):
            await submit_lineup(repo, 999, ids["round_id"], COACH, ["A"])

    async def test_rescored_after_submit(self, repo: Repository):
        ids = await _seed(repo)
        await repo.upsert_player_results(ids["round_id"], {"alice": ("Alice", Decimal(7))})
        await submit_lineup(repo, ids["team_id"], ids["round_id"], COACH, ["alice"], now=BEFORE)
        scores = await repo.get_f1_round_scores(ids["competition_id"], ids["round_id"])
        by_team = {s.team_id: s.score for s in scores}
        assert by_team[ids["team_id"]] == Decimal(7)


class TestGetLineup:
    async def test_missing(self, repo: Repository):
        ids = await _seed(repo)
        assert await get_lineup(repo, ids["team_id"], ids["round_id"]) is None

    async def test_wrapped_entries_are_flattened(self, repo: Repository):
        ids = await _seed(repo)
        await repo.upsert_lineup(ids["team_id"], ids["round_id"], {"items": ["x", None]})
        view = await get_lineup(repo, ids["team_id"], ids["round_id"])
        assert view.entries == ["x", ""]
