"""Formula-1 style standings.

Each round, teams are ranked by round score and awarded points from a fixed
table by position. Points, rounds played and total round score accumulate
across rounds into the final table.

Tie-breaks:
  - within a round: equal scores are ordered by team name ascending, and the
    positions are still distinct (two teams on 10 take 25 and 18).
  - final table: F1 points desc, then total round score desc, then team name.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from fantalega.config import DEFAULT_F1_POINTS
from fantalega.core.scoring import score_team
from fantalega.models.competition import RoundContext, TeamRef
from fantalega.models.standings import (
    F1Computation,
    F1RoundSummary,
    F1Standing,
    TeamRoundScore,
)

logger = logging.getLogger(__name__)

F1_POINTS: tuple[int, ...] = tuple(DEFAULT_F1_POINTS)


def points_for_position(position: int, table: Sequence[int] = F1_POINTS) -> int:
    """Points for a 1-based finishing position; beyond the table is zero."""
    if position < 1 or position > len(table):
        return 0
    return table[position - 1]


def rank_round(
    round_ctx: RoundContext,
    teams: Sequence[TeamRef],
    table: Sequence[int] = F1_POINTS,
) -> F1RoundSummary:
    """Score every team in one round and assign positions and points."""
    scored = [
        (team, score_team(round_ctx.lineups.get(team.id, []), round_ctx.results))
        for team in teams
    ]
    scored.sort(key=lambda pair: pair[0].name)
    scored.sort(key=lambda pair: pair[1], reverse=True)

    scores = [
        TeamRoundScore(
            round_id=round_ctx.round_id,
            team_id=team.id,
            team_name=team.name,
            score=score,
            position=idx + 1,
            points=points_for_position(idx + 1, table),
        )
        for idx, (team, score) in enumerate(scored)
    ]
    return F1RoundSummary(round_id=round_ctx.round_id, scores=scores)


def sort_f1_standings(rows: list[F1Standing]) -> list[F1Standing]:
    """Order the aggregate table and stamp 1-based positions."""
    ordered = sorted(
        rows,
        key=lambda r: (-r.f1_points, -r.total_round_score, r.team_name),
    )
    for idx, row in enumerate(ordered):
        row.position = idx + 1
    return ordered


def compute_f1(
    rounds: Sequence[RoundContext],
    teams: Sequence[TeamRef],
    table: Sequence[int] = F1_POINTS,
) -> F1Computation:
    """Run the F1 engine over *rounds*, in the order given.

    Every team in *teams* appears in the standings, with an all-zero row if no
    round was processed. Zero rounds is not an error.

    Args:
        rounds: Round contexts ordered chronologically (by day index).
        teams: Every team configured in the competition.
        table: Points by finishing position.

    Returns:
        Per-round audit rows and the final ordered table.
    """
    totals: dict[int, F1Standing] = {
        team.id: F1Standing(team_id=team.id, team_name=team.name) for team in teams
    }
    summaries: list[F1RoundSummary] = []

    for round_ctx in rounds:
        summary = rank_round(round_ctx, teams, table)
        for entry in summary.scores:
            row = totals[entry.team_id]
            row.rounds_played += 1
            row.f1_points += entry.points
            row.total_round_score += entry.score
        summaries.append(summary)

    logger.debug("f1_computed rounds=%d teams=%d", len(summaries), len(totals))
    return F1Computation(rounds=summaries, standings=sort_f1_standings(list(totals.values())))
