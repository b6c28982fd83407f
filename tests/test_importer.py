"""Tests for bulk result import with dry-run preview."""

from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

from fantalega.core.errors import Forbidden
from fantalega.core.importer import (
    ISSUE_DUPLICATE,
    ISSUE_EXISTS,
    ISSUE_NOT_IN_ROSTER,
    ISSUE_PLAYER_MISSING,
    ISSUE_POINTS,
    ISSUE_ROUND,
    ISSUE_TEAM,
    import_results,
)
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


async def _seed(repo: Repository) -> dict:
    league = await repo.create_league("Serie Z", owner_id=OWNER)
    competition = await repo.create_competition(league.id, "Sprint", CompetitionType.F1)
    r1, r2 = await repo.replace_rounds(competition.id, [{"name": "Opening"}, {}])
    reds = await repo.create_team(competition.id, "Reds", user_id=2)
    blues = await repo.create_team(competition.id, "Blues", user_id=3)
    await repo.upsert_lineup(reds.id, r1.id, ["Alice", "Bob"])
    return {
        "competition_id": competition.id,
        "r1": r1.id,
        "r2": r2.id,
        "reds": reds.id,
        "blues": blues.id,
    }


def _row(round_id, team, player, points) -> dict:
    return {"round_id": round_id, "team_name": team, "player_name": player, "points": points}


class TestPreview:
    async def test_valid_rows(self, repo: Repository):
        ids = await _seed(repo)
        report = await import_results(
            repo,
            ids["competition_id"],
            OWNER,
            [_row(ids["r1"], " reds ", "ALICE", "6,5"), _row(str(ids["r1"]), "Blues", "Zed", 3)],
            dry_run=True,
        )
        assert report.valid_count == 2
        assert report.invalid_count == 0
        first = report.preview_rows[0]
        assert first.round_name == "Opening"
        assert first.team_id == ids["reds"]
        assert first.normalized_player == "alice"
        assert first.points == Decimal("6.5")
        assert report.applied is False
        assert await repo.get_player_results([ids["r1"]]) == []

    async def test_issues(self, repo: Repository):
        ids = await _seed(repo)
        report = await import_results(
            repo,
            ids["competition_id"],
            OWNER,
            [
                _row(999, "Reds", "Alice", 1),
                _row(ids["r1"], "Greens", "Alice", 1),
                _row(ids["r1"], "Reds", "  ", 1),
                _row(ids["r1"], "Reds", "Carol", 1),
                _row(ids["r1"], "Reds", "Bob", "lots"),
            ],
            dry_run=True,
        )
        issues = [r.issues for r in report.preview_rows]
        assert issues == [
            [ISSUE_ROUND],
            [ISSUE_TEAM],
            [ISSUE_PLAYER_MISSING],
            [ISSUE_NOT_IN_ROSTER],
            [ISSUE_POINTS],
        ]
        assert report.valid_count == 0
        assert report.invalid_count == 5

    async def test_points_that_would_be_rounded(self, repo: Repository):
        ids = await _seed(repo)
        report = await import_results(
            repo,
            ids["competition_id"],
            OWNER,
            [_row(ids["r1"], "Reds", "Alice", "6.125")],
        )
        assert report.preview_rows[0].issues == [ISSUE_POINTS]
        assert report.preview_rows[0].points is None
        assert report.applied is False
        assert await repo.get_player_results([ids["r1"]]) == []

    async def test_round_id_with_non_ascii_digits(self, repo: Repository):
        ids = await _seed(repo)
        report = await import_results(
            repo, ids["competition_id"], OWNER, [_row("²", "Reds", "Alice", 1)], dry_run=True
        )
        assert report.preview_rows[0].round_id is None
        assert report.preview_rows[0].issues == [ISSUE_ROUND]

    async def test_empty_roster_accepts_anyone(self, repo: Repository):
        ids = await _seed(repo)
        rows = [_row(ids["r2"], "Blues", "Anyone", 2)]
        report = await import_results(repo, ids["competition_id"], OWNER, rows, dry_run=True)
        assert report.preview_rows[0].valid is True

    async def test_duplicate_in_batch(self, repo: Repository):
        ids = await _seed(repo)
        report = await import_results(
            repo,
            ids["competition_id"],
            OWNER,
            [_row(ids["r1"], "Reds", "Alice", 1), _row(ids["r1"], "reds", "alice", 2)],
            dry_run=True,
        )
        assert report.preview_rows[0].valid is True
        assert report.preview_rows[1].issues == [ISSUE_DUPLICATE]

    async def test_existing_result_needs_overwrite(self, repo: Repository):
        ids = await _seed(repo)
        await repo.upsert_player_results(ids["r1"], {"alice": ("Alice", Decimal(4))})
        rows = [_row(ids["r1"], "Reds", "Alice", 9)]

        report = await import_results(repo, ids["competition_id"], OWNER, rows, dry_run=True)
        assert report.preview_rows[0].issues == [ISSUE_EXISTS]

        report = await import_results(
            repo, ids["competition_id"], OWNER, rows, overwrite=True, dry_run=True
        )
        assert report.preview_rows[0].valid is True

    async def test_no_rows(self, repo: Repository):
        ids = await _seed(repo)
        report = await import_results(repo, ids["competition_id"], OWNER, [])
        assert report.errors == ["No rows provided"]
        assert report.valid_count == report.invalid_count == 0
        assert report.applied is False


class TestApply:
    async def test_inserts_and_recomputes(self, repo: Repository):
        ids = await _seed(repo)
        report = await import_results(
            repo,
            ids["competition_id"],
            OWNER,
            [_row(ids["r1"], "Reds", "Alice", 20), _row(ids["r1"], "Reds", "Nobody", 1)],
        )
        assert report.applied is True
        assert report.inserted == 1
        assert report.invalid_count == 1
        assert report.recompute.f1.rounds_processed == 1

        rows = await repo.get_f1_standing_rows(ids["competition_id"])
        assert rows[0].team_id == ids["reds"]
        assert rows[0].f1_points == 25

    async def test_overwrite_replaces(self, repo: Repository):
        ids = await _seed(repo)
        await repo.upsert_player_results(ids["r1"], {"alice": ("Alice", Decimal(4))})
        report = await import_results(
            repo,
            ids["competition_id"],
            OWNER,
            [_row(ids["r1"], "Reds", "Alice", 9)],
            overwrite=True,
        )
        assert (report.deleted, report.inserted) == (1, 1)
        (result,) = await repo.get_player_results([ids["r1"]])
        assert result.points == Decimal(9)

    async def test_nothing_valid_writes_nothing(self, repo: Repository):
        ids = await _seed(repo)
        report = await import_results(
            repo, ids["competition_id"], OWNER, [_row(ids["r1"], "Nope", "Alice", 1)]
        )
        assert report.applied is False
        assert report.recompute is None


class TestAccess:
    async def test_non_owner(self, repo: Repository):
        ids = await _seed(repo)
        with pytest.raises(Forbidden):
            await import_results(repo, ids["competition_id"], 2, [_row(ids["r1"], "Reds", "A", 1)])
