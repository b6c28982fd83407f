"""Bulk import of player results, with a dry-run preview.

Rows arrive already parsed (``round_id``, ``team_name``, ``player_name``,
``points``). Each row is validated against the competition's calendar, teams
and known rosters; only fully valid rows are written.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from pydantic import BaseModel

from fantalega.core.access import coerce_id, load_owned_competition
from fantalega.core.names import distinct_players, extract_entries, format_name, normalize_name
from fantalega.core.recompute import competition_lock, refresh_competition
from fantalega.core.scoring import parse_points
from fantalega.models.outcomes import ImportPreviewRow, ImportReport

if TYPE_CHECKING:
    from fantalega.db.models import CompetitionRow
    from fantalega.db.repository import Repository

logger = logging.getLogger(__name__)

ISSUE_ROUND = "Round is not part of this competition"
ISSUE_TEAM = "Team not found in this competition"
ISSUE_PLAYER_MISSING = "Player name missing"
ISSUE_NOT_IN_ROSTER = "Player is not in the team's roster"
ISSUE_POINTS = "Points must be a number with at most two decimals"
ISSUE_EXISTS = "Result already present: enable overwrite to update it"
ISSUE_DUPLICATE = "Duplicate row in the import"


@dataclass
class _TeamEntry:
    id: int
    name: str
    roster: set[str]


@dataclass
class _ValidRow:
    round_id: int
    player: str
    display_name: str
    points: Decimal


def _field(row: object, name: str) -> object:
    if isinstance(row, BaseModel):
        return getattr(row, name, None)
    if isinstance(row, Mapping):
        return row.get(name)
    return None


def _parse_round_id(raw: object) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw > 0 else None
    text = str(raw if raw is not None else "").strip()
    return int(text) if text.isdecimal() and int(text) > 0 else None


async def _team_index(repo: Repository, competition: CompetitionRow) -> dict[str, _TeamEntry]:
    """Teams by normalized name, each with every player it ever fielded."""
    rosters: dict[int, set[str]] = defaultdict(set)
    for lineup in await repo.get_lineups_for_competition(competition.id):
        rosters[lineup.team_id] |= distinct_players(extract_entries(lineup.entries))

    index: dict[str, _TeamEntry] = {}
    for team in competition.teams:
        key = normalize_name(team.name)
        if key:
            index[key] = _TeamEntry(id=team.id, name=team.name, roster=rosters[team.id])
    return index


async def import_results(
    repo: Repository,
    competition_id: int,
    user_id: int | None,
    rows: Sequence[object],
    overwrite: bool = False,
    dry_run: bool = False,
    points_table: Sequence[int] | None = None,
) -> ImportReport:
    """Validate *rows* and, unless *dry_run*, write the valid ones.

    Args:
        repo: Database repository.
        competition_id: Competition the results belong to.
        user_id: Authenticated user; must own the league.
        rows: Mappings (or models) with ``round_id``, ``team_name``,
            ``player_name`` and ``points``.
        overwrite: Replace results that already exist instead of flagging them.
        dry_run: Only build the preview.
        points_table: F1 points by position used for the refreshed standings.

    Returns:
        An ``ImportReport`` with a preview row per input row. When applied, it
        also carries the inserted/deleted counts and the recompute summary.
    """
    competition_id = coerce_id(competition_id, "competition_id")
    competition = await load_owned_competition(repo, competition_id, user_id)

    report = ImportReport(dry_run=dry_run, overwrite=overwrite)
    if not rows:
        report.errors.append("No rows provided")
        return report

    rounds = {r.id: r for r in competition.rounds}
    teams = await _team_index(repo, competition)

    existing: dict[int, set[str]] = defaultdict(set)
    parsed_ids = (_parse_round_id(_field(r, "round_id")) for r in rows)
    candidate_rounds = {rid for rid in parsed_ids if rid}
    for res in await repo.get_player_results(candidate_rounds & rounds.keys()):
        existing[res.round_id].add(res.player)

    seen: set[tuple[int, str, str]] = set()
    valid_rows: list[_ValidRow] = []
    for index, row in enumerate(rows):
        round_id = _parse_round_id(_field(row, "round_id"))
        team_name = format_name(str(_field(row, "team_name") or ""))
        player_name = format_name(str(_field(row, "player_name") or ""))
        points = parse_points(_field(row, "points"))
        team_key = normalize_name(team_name)
        player_key = normalize_name(player_name)

        issues: list[str] = []
        round_row = rounds.get(round_id) if round_id else None
        if round_row is None:
            issues.append(ISSUE_ROUND)
        team = teams.get(team_key) if team_key else None
        if team is None:
            issues.append(ISSUE_TEAM)
        if not player_key:
            issues.append(ISSUE_PLAYER_MISSING)
        elif team is not None and team.roster and player_key not in team.roster:
            issues.append(ISSUE_NOT_IN_ROSTER)
        if points is None:
            issues.append(ISSUE_POINTS)
        if player_key and round_id and not overwrite and player_key in existing.get(round_id, ()):
            issues.append(ISSUE_EXISTS)
        if round_id and team_key and player_key:
            combo = (round_id, team_key, player_key)
            if combo in seen:
                issues.append(ISSUE_DUPLICATE)
            seen.add(combo)

        valid = not issues
        if valid:
            valid_rows.append(
                _ValidRow(
                    round_id=round_id,
                    player=player_key,
                    display_name=player_name,
                    points=points,
                )
            )
        report.preview_rows.append(
            ImportPreviewRow(
                index=index,
                round_id=round_id,
                round_name=round_row.name if round_row else None,
                team_name=team_name,
                team_id=team.id if team else None,
                player_name=player_name,
                normalized_player=player_key or None,
                points=points,
                valid=valid,
                issues=issues,
            )
        )

    report.valid_count = len(valid_rows)
    report.invalid_count = len(rows) - len(valid_rows)
    if dry_run or not valid_rows:
        logger.info(
            "import_previewed competition=%d valid=%d invalid=%d",
            competition_id,
            report.valid_count,
            report.invalid_count,
        )
        return report

    async with competition_lock(competition.id):
        if overwrite:
            by_round: dict[int, set[str]] = defaultdict(set)
            for vr in valid_rows:
                by_round[vr.round_id].add(vr.player)
            for round_id, players in by_round.items():
                report.deleted += await repo.delete_player_results(round_id, players)
        report.inserted = await repo.insert_player_results(
            (vr.round_id, vr.player, vr.display_name, vr.points) for vr in valid_rows
        )
        report.recompute = await refresh_competition(repo, competition, points_table=points_table)

    report.applied = True
    logger.info(
        "import_applied competition=%d inserted=%d deleted=%d invalid=%d",
        competition_id,
        report.inserted,
        report.deleted,
        report.invalid_count,
    )
    return report
