"""Standings and results recomputation for a competition.

Reads the source data (player results, lineups, matches), runs the F1 and
H2H engines, and rewrites the derived projections. A recompute is always a
full rebuild: delete the competition's derived rows, recompute, insert.
Match rows are written only when their computed scores differ from the
stored ones, so running it twice on unchanged data writes nothing the second
time.

Every mutation of a competition's inputs funnels through ``refresh_competition``
while holding that competition's lock, so two concurrent requests cannot
interleave a stale read with a write.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from fantalega.core.access import coerce_id, load_owned_competition, load_owned_round
from fantalega.core.errors import InvalidInput, NotFound
from fantalega.core.f1 import compute_f1
from fantalega.core.h2h import compute_h2h_standings, resolve_matches
from fantalega.core.names import extract_entries
from fantalega.core.scoring import build_results_map
from fantalega.models.competition import (
    CompetitionInfo,
    CompetitionType,
    MatchRef,
    MatchResult,
    RecomputeMode,
    RoundContext,
    RoundInfo,
    TeamRef,
)
from fantalega.models.outcomes import F1Summary, H2HSummary, RecomputeSummary
from fantalega.models.standings import MatchOutcome

if TYPE_CHECKING:
    from collections.abc import Sequence

    from fantalega.db.models import CompetitionRow, MatchRow, RoundRow
    from fantalega.db.repository import Repository

logger = logging.getLogger(__name__)

# One lock per competition id, shared by every session in the process. An entry
# lives only while some task holds or waits on it; locks assume a single event loop.
_competition_locks: weakref.WeakValueDictionary[int, asyncio.Lock] = (
    weakref.WeakValueDictionary()
)


def competition_lock(competition_id: int) -> asyncio.Lock:
    """Return the lock serializing writes to *competition_id*. Not reentrant."""
    lock = _competition_locks.get(competition_id)
    if lock is None:
        lock = _competition_locks[competition_id] = asyncio.Lock()
    return lock


@dataclass
class CompetitionSnapshot:
    """Source data of one competition, read once per recompute."""

    teams: list[TeamRef]
    rounds: list[RoundRow]
    # Only rounds with at least one recorded result appear here.
    results_by_round: dict[int, dict[str, Decimal]] = field(default_factory=dict)
    # (team id, round id) -> extracted lineup entries
    lineups: dict[tuple[int, int], list[str]] = field(default_factory=dict)

    def round_contexts(self) -> list[RoundContext]:
        """F1 inputs for every played round, in day-index order."""
        contexts = []
        for rnd in self.rounds:
            results = self.results_by_round.get(rnd.id)
            if results is None:
                continue
            lineups = {
                team.id: self.lineups.get((team.id, rnd.id), []) for team in self.teams
            }
            contexts.append(RoundContext(round_id=rnd.id, results=results, lineups=lineups))
        return contexts


def team_refs(competition: CompetitionRow) -> list[TeamRef]:
    return [TeamRef(id=t.id, name=t.name) for t in competition.teams]


def to_match_ref(row: MatchRow) -> MatchRef:
    return MatchRef(
        id=row.id,
        round_id=row.round_id,
        home_team_id=row.home_team_id,
        away_team_id=row.away_team_id,
        home_score=row.home_score,
        away_score=row.away_score,
        result=MatchResult(row.result) if row.result else None,
    )


def to_match_outcome(row: MatchRow) -> MatchOutcome | None:
    """Stored match as a table input, or None while it has no result."""
    if not row.result:
        return None
    return MatchOutcome(
        home_team_id=row.home_team_id,
        away_team_id=row.away_team_id,
        home_score=row.home_score if row.home_score is not None else Decimal(0),
        away_score=row.away_score if row.away_score is not None else Decimal(0),
        result=MatchResult(row.result),
    )


async def load_snapshot(repo: Repository, competition: CompetitionRow) -> CompetitionSnapshot:
    rounds = sorted(competition.rounds, key=lambda r: r.day_index)
    snapshot = CompetitionSnapshot(teams=team_refs(competition), rounds=rounds)

    grouped: dict[int, list[tuple[str, object]]] = defaultdict(list)
    for res in await repo.get_player_results(r.id for r in rounds):
        grouped[res.round_id].append((res.player, res.points))
    for round_id, pairs in grouped.items():
        results = build_results_map(pairs)
        if results:
            snapshot.results_by_round[round_id] = results

    for lineup in await repo.get_lineups_for_competition(competition.id):
        snapshot.lineups[(lineup.team_id, lineup.round_id)] = extract_entries(lineup.entries)

    return snapshot


async def recompute_f1(
    repo: Repository,
    competition: CompetitionRow,
    snapshot: CompetitionSnapshot,
    points_table: Sequence[int] | None = None,
) -> F1Summary:
    """Rebuild the F1 projection from *snapshot*."""
    kwargs = {"table": points_table} if points_table is not None else {}
    computation = compute_f1(snapshot.round_contexts(), snapshot.teams, **kwargs)
    await repo.replace_f1_projection(competition.id, computation)
    logger.info(
        "recompute_f1 competition=%d rounds=%d teams=%d",
        competition.id,
        computation.rounds_processed,
        len(snapshot.teams),
    )
    return F1Summary(
        rounds_processed=computation.rounds_processed,
        teams_evaluated=len(snapshot.teams),
    )


async def _write_resolved(
    repo: Repository,
    rows: list[MatchRow],
    snapshot: CompetitionSnapshot,
) -> H2HSummary:
    """Resolve *rows* and write back only what changed.

    Matches of rounds without results are pending; any scores still stored on
    them are cleared so the table only ever reflects played rounds.
    """
    refs = [to_match_ref(row) for row in rows]
    resolved = resolve_matches(refs, snapshot.results_by_round, snapshot.lineups)
    resolved_ids = {m.match_id for m in resolved}

    updated = 0
    for m in resolved:
        if m.changed:
            await repo.update_match_scores(m.match_id, m.home_score, m.away_score, m.result)
            updated += 1

    pending = [ref for ref in refs if ref.id not in resolved_ids]
    for ref in pending:
        if ref.home_score is not None or ref.away_score is not None or ref.result is not None:
            await repo.update_match_scores(ref.id, None, None, None)
            updated += 1

    return H2HSummary(
        matches_evaluated=len(resolved),
        matches_updated=updated,
        matches_pending=len(pending),
    )


async def rebuild_h2h_projection(
    repo: Repository,
    competition: CompetitionRow,
    teams: list[TeamRef],
) -> None:
    """Fold every stored match with a result into h2h_standings."""
    outcomes = [
        o for o in (to_match_outcome(row) for row in await repo.get_matches(competition.id)) if o
    ]
    await repo.replace_h2h_projection(competition.id, compute_h2h_standings(teams, outcomes))


async def recompute_h2h(
    repo: Repository,
    competition: CompetitionRow,
    snapshot: CompetitionSnapshot,
) -> H2HSummary:
    """Resolve every match of the competition and rebuild the H2H projection."""
    rows = await repo.get_matches(competition.id)
    summary = await _write_resolved(repo, rows, snapshot)
    await rebuild_h2h_projection(repo, competition, snapshot.teams)
    logger.info(
        "recompute_h2h competition=%d evaluated=%d updated=%d pending=%d",
        competition.id,
        summary.matches_evaluated,
        summary.matches_updated,
        summary.matches_pending,
    )
    return summary


async def refresh_competition(
    repo: Repository,
    competition: CompetitionRow,
    mode: RecomputeMode = RecomputeMode.ALL,
    points_table: Sequence[int] | None = None,
) -> RecomputeSummary:
    """Recompute without taking the lock. Callers must hold ``competition_lock``."""
    snapshot = await load_snapshot(repo, competition)
    summary = RecomputeSummary(competition_id=competition.id, mode=mode)
    if mode in (RecomputeMode.F1, RecomputeMode.ALL):
        summary.f1 = await recompute_f1(repo, competition, snapshot, points_table)
    if mode in (RecomputeMode.H2H, RecomputeMode.ALL):
        summary.h2h = await recompute_h2h(repo, competition, snapshot)
    return summary


def parse_mode(mode: object) -> RecomputeMode:
    try:
        return RecomputeMode(str(mode).lower())
    except ValueError:
        raise InvalidInput("Invalid mode", mode=mode) from None


async def recompute_competition(
    repo: Repository,
    competition_id: int,
    user_id: int | None,
    mode: RecomputeMode | str = RecomputeMode.ALL,
    points_table: Sequence[int] | None = None,
) -> RecomputeSummary:
    """Admin recompute of a competition's derived data.

    Args:
        repo: Database repository.
        competition_id: Competition to recompute.
        user_id: Authenticated user; must own the competition's league.
        mode: ``f1``, ``h2h`` or ``all``.
        points_table: Optional F1 points by position (defaults to 25-18-15...).

    Raises:
        InvalidInput, NotAuthenticated, NotFound, Forbidden.
    """
    competition_id = coerce_id(competition_id, "competition_id")
    parsed = parse_mode(mode)
    competition = await load_owned_competition(repo, competition_id, user_id)
    async with competition_lock(competition.id):
        return await refresh_competition(repo, competition, parsed, points_table)


async def resolve_round(
    repo: Repository,
    round_id: int,
    user_id: int | None,
) -> H2HSummary:
    """Resolve the H2H matches of a single round and refresh the H2H table."""
    round_id = coerce_id(round_id, "round_id")
    round_row = await load_owned_round(repo, round_id, user_id)
    competition = await repo.get_competition(round_row.competition_id)
    if competition is None:
        raise NotFound("Competition not found", competition_id=round_row.competition_id)

    async with competition_lock(competition.id):
        snapshot = await load_snapshot(repo, competition)
        rows = await repo.get_matches(competition.id, round_id=round_id)
        if not rows:
            return H2HSummary()
        summary = await _write_resolved(repo, rows, snapshot)
        await rebuild_h2h_projection(repo, competition, snapshot.teams)

    logger.info(
        "resolve_round round=%d evaluated=%d updated=%d",
        round_id,
        summary.matches_evaluated,
        summary.matches_updated,
    )
    return summary


async def describe_competition(
    repo: Repository,
    competition_id: int,
    user_id: int | None,
) -> CompetitionInfo:
    """Basics and calendar of a competition, for its league owner."""
    competition_id = coerce_id(competition_id, "competition_id")
    competition = await load_owned_competition(repo, competition_id, user_id)
    return CompetitionInfo(
        id=competition.id,
        name=competition.name,
        league_id=competition.league_id,
        type=CompetitionType(competition.type),
        rounds=[
            RoundInfo(
                id=r.id,
                name=r.name,
                day_index=r.day_index,
                start_date=r.start_date,
                end_date=r.end_date,
                lock_at=r.lock_at,
            )
            for r in sorted(competition.rounds, key=lambda r: r.day_index)
        ],
    )
