"""Per-player round results entered by the league owner."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING

from fantalega.core.access import coerce_id, load_owned_round
from fantalega.core.errors import InvalidInput, NotFound
from fantalega.core.names import extract_entries, format_name, normalize_name
from fantalega.core.recompute import competition_lock, refresh_competition
from fantalega.core.scoring import parse_points
from fantalega.models.outcomes import RoundPlayer, RoundResult, SaveResultsSummary

if TYPE_CHECKING:
    from decimal import Decimal

    from fantalega.db.repository import Repository

logger = logging.getLogger(__name__)


def collect_result_items(items: Iterable[object]) -> dict[str, tuple[str, Decimal]]:
    """Reduce ``{player, points}`` items to one entry per normalized player.

    Items with a blank player name or non-numeric points are skipped. When a
    player appears more than once, the last item wins.
    """
    collected: dict[str, tuple[str, Decimal]] = {}
    for item in items:
        if not isinstance(item, Mapping):
            continue
        key = normalize_name(item.get("player"))
        points = parse_points(item.get("points"))
        if not key or points is None:
            continue
        collected[key] = (format_name(item.get("player")), points)
    return collected


async def save_player_results(
    repo: Repository,
    round_id: int,
    user_id: int | None,
    items: list[dict],
    points_table: Sequence[int] | None = None,
) -> SaveResultsSummary:
    """Upsert a round's player results and rebuild the competition's standings.

    Raises:
        InvalidInput: *items* is not a list, or holds no usable item.
        NotAuthenticated, NotFound, Forbidden.
    """
    round_id = coerce_id(round_id, "round_id")
    if not isinstance(items, (list, tuple)):
        raise InvalidInput("items must be a list")
    round_row = await load_owned_round(repo, round_id, user_id)

    collected = collect_result_items(items)
    if not collected:
        raise InvalidInput("No valid results provided", round_id=round_id)

    competition_id = round_row.competition_id
    async with competition_lock(competition_id):
        count = await repo.upsert_player_results(round_id, collected)
        competition = await repo.get_competition(competition_id)
        if competition is None:
            raise NotFound("Competition not found", competition_id=competition_id)
        await refresh_competition(repo, competition, points_table=points_table)

    logger.info("results_saved round=%d count=%d skipped=%d", round_id, count, len(items) - count)
    return SaveResultsSummary(round_id=round_id, count=count)


async def get_round_results(repo: Repository, round_id: int) -> list[RoundResult]:
    """A round's results, best score first."""
    round_id = coerce_id(round_id, "round_id")
    if await repo.get_round(round_id) is None:
        raise NotFound("Round not found", round_id=round_id)
    rows = await repo.get_player_results([round_id])
    results = [
        RoundResult(player=r.player, display_name=r.display_name or r.player, points=r.points)
        for r in rows
    ]
    results.sort(key=lambda r: (-r.points, r.player))
    return results


async def list_round_players(
    repo: Repository,
    round_id: int,
    user_id: int | None,
) -> list[RoundPlayer]:
    """Every player named in any lineup of the round, for result entry.

    Each row carries the first spelling seen, the teams fielding the player
    (sorted by name) and the points already recorded, if any.
    """
    round_id = coerce_id(round_id, "round_id")
    await load_owned_round(repo, round_id, user_id)

    players: dict[str, RoundPlayer] = {}
    for lineup in await repo.get_lineups_for_round(round_id):
        team_name = lineup.team.name if lineup.team else ""
        for entry in extract_entries(lineup.entries):
            key = normalize_name(entry)
            if not key:
                continue
            player = players.get(key)
            if player is None:
                player = players[key] = RoundPlayer(player=key, original=format_name(entry))
            if team_name and team_name not in player.teams:
                player.teams.append(team_name)

    for row in await repo.get_player_results([round_id]):
        if row.player in players:
            players[row.player].points = row.points

    for player in players.values():
        player.teams.sort()
    return sorted(players.values(), key=lambda p: p.player)
