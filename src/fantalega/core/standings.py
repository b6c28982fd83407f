"""Read-side standings, computed from stored data on every call."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fantalega.core.access import coerce_id
from fantalega.core.errors import NotFound
from fantalega.core.f1 import F1_POINTS, compute_f1
from fantalega.core.h2h import compute_h2h_standings
from fantalega.core.recompute import load_snapshot, team_refs, to_match_outcome
from fantalega.models.standings import F1Standing, H2HStanding, TeamRoundScore

if TYPE_CHECKING:
    from collections.abc import Sequence

    from fantalega.db.models import CompetitionRow
    from fantalega.db.repository import Repository


async def _load(repo: Repository, competition_id: int) -> CompetitionRow:
    competition_id = coerce_id(competition_id, "competition_id")
    competition = await repo.get_competition(competition_id)
    if competition is None:
        raise NotFound("Competition not found", competition_id=competition_id)
    return competition


async def f1_standings(
    repo: Repository,
    competition_id: int,
    points_table: Sequence[int] = F1_POINTS,
) -> list[F1Standing]:
    competition = await _load(repo, competition_id)
    snapshot = await load_snapshot(repo, competition)
    return compute_f1(snapshot.round_contexts(), snapshot.teams, points_table).standings


async def h2h_standings(repo: Repository, competition_id: int) -> list[H2HStanding]:
    """Win/draw/loss table folded from the stored match results."""
    competition = await _load(repo, competition_id)
    outcomes = [o for o in map(to_match_outcome, await repo.get_matches(competition.id)) if o]
    return compute_h2h_standings(team_refs(competition), outcomes)


async def f1_round_scores(
    repo: Repository,
    competition_id: int,
    round_id: int | None = None,
) -> list[TeamRoundScore]:
    """Per-round F1 audit rows as last written by a recompute."""
    competition = await _load(repo, competition_id)
    names = {t.id: t.name for t in competition.teams}
    rows = await repo.get_f1_round_scores(competition.id, round_id=round_id)
    return [
        TeamRoundScore(
            round_id=r.round_id,
            team_id=r.team_id,
            team_name=names.get(r.team_id, ""),
            score=r.score,
            position=r.position,
            points=r.points,
        )
        for r in rows
    ]
