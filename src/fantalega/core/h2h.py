"""Head-to-head match resolution and league table.

A match's scores are the two teams' round scores for the match's round. The
table awards 2 points for a win and 1 for a draw and is ordered by points,
goal difference, goals for, then team name.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from decimal import Decimal

from fantalega.core.scoring import same_score, score_team
from fantalega.models.competition import MatchRef, MatchResult, TeamRef
from fantalega.models.standings import H2HStanding, MatchOutcome, ResolvedMatch

logger = logging.getLogger(__name__)

WIN_POINTS = 2
DRAW_POINTS = 1


def result_code(home_score: Decimal, away_score: Decimal) -> MatchResult:
    if home_score > away_score:
        return MatchResult.HOME
    if away_score > home_score:
        return MatchResult.AWAY
    return MatchResult.DRAW


def resolve_match(
    match: MatchRef,
    round_results: Mapping[str, Decimal],
    lineups: Mapping[tuple[int, int], list[str]],
) -> ResolvedMatch:
    """Compute scores and result for one match against its round's results."""
    home_score = score_team(lineups.get((match.home_team_id, match.round_id), []), round_results)
    away_score = score_team(lineups.get((match.away_team_id, match.round_id), []), round_results)
    result = result_code(home_score, away_score)
    changed = not (
        same_score(match.home_score, home_score)
        and same_score(match.away_score, away_score)
        and match.result == result
    )
    return ResolvedMatch(
        match_id=match.id,
        round_id=match.round_id,
        home_team_id=match.home_team_id,
        away_team_id=match.away_team_id,
        home_score=home_score,
        away_score=away_score,
        result=result,
        changed=changed,
    )


def resolve_matches(
    matches: Sequence[MatchRef],
    results_by_round: Mapping[int, Mapping[str, Decimal]],
    lineups: Mapping[tuple[int, int], list[str]],
) -> list[ResolvedMatch]:
    """Resolve every match whose round has recorded results.

    Args:
        matches: Stored matches, with their current scores.
        results_by_round: Round id -> (normalized player -> points). A round
            missing from this mapping has not been played; its matches are
            left out of the returned list (pending).
        lineups: (team id, round id) -> raw lineup entries.

    Returns:
        One ResolvedMatch per playable match, in input order. Callers write
        back only the ones with ``changed`` set.
    """
    resolved: list[ResolvedMatch] = []
    for match in matches:
        round_results = results_by_round.get(match.round_id)
        if round_results is None:
            continue
        resolved.append(resolve_match(match, round_results, lineups))
    return resolved


def sort_h2h_standings(rows: list[H2HStanding]) -> list[H2HStanding]:
    ordered = sorted(
        rows,
        key=lambda r: (-r.points, -r.diff, -r.goals_for, r.team_name),
    )
    for idx, row in enumerate(ordered):
        row.position = idx + 1
    return ordered


def compute_h2h_standings(
    teams: Sequence[TeamRef],
    matches: Sequence[MatchOutcome],
) -> list[H2HStanding]:
    """Fold match outcomes into a table seeded with every team.

    Teams with no matches keep an all-zero row. Matches naming a team outside
    *teams* are ignored.
    """
    table: dict[int, H2HStanding] = {
        team.id: H2HStanding(team_id=team.id, team_name=team.name) for team in teams
    }

    for m in matches:
        home = table.get(m.home_team_id)
        away = table.get(m.away_team_id)
        if home is None or away is None:
            logger.warning(
                "h2h_match_skipped home=%d away=%d reason=unknown_team",
                m.home_team_id,
                m.away_team_id,
            )
            continue

        home.played += 1
        away.played += 1
        home.goals_for += m.home_score
        home.goals_against += m.away_score
        away.goals_for += m.away_score
        away.goals_against += m.home_score

        if m.result == MatchResult.HOME:
            home.points += WIN_POINTS
            home.wins += 1
            away.losses += 1
        elif m.result == MatchResult.AWAY:
            away.points += WIN_POINTS
            away.wins += 1
            home.losses += 1
        else:
            home.points += DRAW_POINTS
            away.points += DRAW_POINTS
            home.ties += 1
            away.ties += 1

    for row in table.values():
        row.diff = row.goals_for - row.goals_against

    return sort_h2h_standings(list(table.values()))
