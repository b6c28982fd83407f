"""Lineup submission by team owners, with round lock enforcement.

The lock is only checked here, when a lineup is written. Scoring always uses
whatever lineup is stored, whenever it was saved.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from fantalega.config import DEFAULT_LINEUP_MAX_ENTRIES
from fantalega.core.access import coerce_id, is_league_owner, require_team_owner, require_user
from fantalega.core.errors import Forbidden, InvalidInput, NotFound
from fantalega.core.names import extract_entries
from fantalega.core.recompute import competition_lock, refresh_competition
from fantalega.models.outcomes import LineupView

if TYPE_CHECKING:
    from collections.abc import Sequence

    from fantalega.db.models import LineupRow, RoundRow
    from fantalega.db.repository import Repository

logger = logging.getLogger(__name__)


def clean_entries(entries: object, max_entries: int = DEFAULT_LINEUP_MAX_ENTRIES) -> list[str]:
    """Trim submitted entries and drop blanks and non-strings.

    Raises:
        InvalidInput: not a list, nothing left after cleaning, or too many.
    """
    if not isinstance(entries, (list, tuple)):
        raise InvalidInput("entries must be a list")
    cleaned = [e.strip() for e in entries if isinstance(e, str) and e.strip()]
    if not cleaned:
        raise InvalidInput("Enter at least one player")
    if len(cleaned) > max_entries:
        raise InvalidInput(f"At most {max_entries} players", max_entries=max_entries)
    return cleaned


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC.
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


def is_locked(round_row: RoundRow, now: datetime) -> bool:
    return round_row.lock_at is not None and _as_utc(now) >= _as_utc(round_row.lock_at)


def to_view(row: LineupRow) -> LineupView:
    return LineupView(
        id=row.id,
        team_id=row.team_id,
        round_id=row.round_id,
        entries=extract_entries(row.entries),
        updated_at=row.updated_at,
    )


async def submit_lineup(
    repo: Repository,
    team_id: int,
    round_id: int,
    user_id: int | None,
    entries: list[str],
    override: bool = False,
    now: datetime | None = None,
    max_entries: int = DEFAULT_LINEUP_MAX_ENTRIES,
    points_table: Sequence[int] | None = None,
) -> LineupView:
    """Create or replace a team's lineup for a round.

    Only the team's owner may submit. Once the round's ``lock_at`` has passed
    the write is refused, unless *override* is set by the league owner.

    Raises:
        InvalidInput: bad ids or entries, or a round of another competition.
        NotAuthenticated: no user.
        NotFound: unknown team or round.
        Forbidden: not the team owner, override by a non-owner, or round locked.
    """
    team_id = coerce_id(team_id, "team_id")
    round_id = coerce_id(round_id, "round_id")
    require_user(user_id)
    cleaned = clean_entries(entries, max_entries)

    team = await repo.get_team(team_id)
    if team is None:
        raise NotFound("Team not found", team_id=team_id)
    require_team_owner(team, user_id)

    round_row = await repo.get_round(round_id)
    if round_row is None:
        raise NotFound("Round not found", round_id=round_id)
    if round_row.competition_id != team.competition_id:
        raise InvalidInput("Round belongs to another competition", round_id=round_id)

    owner = is_league_owner(round_row.competition, user_id)
    if override and not owner:
        raise Forbidden("Override not allowed", round_id=round_id)
    if is_locked(round_row, now or datetime.now(UTC)) and not override:
        raise Forbidden("Round locked", round_id=round_id, lock_at=round_row.lock_at)

    competition_id = team.competition_id
    async with competition_lock(competition_id):
        row = await repo.upsert_lineup(team.id, round_row.id, cleaned)
        competition = await repo.get_competition(competition_id)
        if competition is None:
            raise NotFound("Competition not found", competition_id=competition_id)
        await refresh_competition(repo, competition, points_table=points_table)

    logger.info(
        "lineup_submitted team=%d round=%d entries=%d override=%s",
        team.id,
        round_row.id,
        len(cleaned),
        override,
    )
    return to_view(row)


async def get_lineup(repo: Repository, team_id: int, round_id: int) -> LineupView | None:
    team_id = coerce_id(team_id, "team_id")
    round_id = coerce_id(round_id, "round_id")
    row = await repo.get_lineup(team_id, round_id)
    return to_view(row) if row else None
