"""Competition calendar: rounds, lineup locks, schedules, fixtures, resets.

Round order is the day index (1..n, assigned when the calendar is
configured). Scheduling consumes rounds in that order.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from fantalega.core.access import coerce_id, load_owned_competition, load_owned_round
from fantalega.core.errors import InvalidInput, NotFound
from fantalega.core.recompute import competition_lock, refresh_competition
from fantalega.core.scheduler import generate_round_robin, rounds_needed
from fantalega.models.competition import MatchResult
from fantalega.models.outcomes import (
    CalendarSummary,
    FixtureView,
    ResetSummary,
    RoundFixtures,
    ScheduleSummary,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from fantalega.db.models import RoundRow
    from fantalega.db.repository import Repository

logger = logging.getLogger(__name__)


def to_utc_naive(value: datetime) -> datetime:
    """Store datetimes as naive UTC; naive input is taken to be UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def parse_datetime(value: object, field: str) -> datetime | None:
    """Parse an optional timestamp.

    ``None`` and blank strings mean "no value". Datetimes pass through, ISO
    8601 strings are parsed. Anything else raises ``InvalidInput``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_utc_naive(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return to_utc_naive(datetime.fromisoformat(text))
        except ValueError:
            raise InvalidInput(f"Invalid {field}", field=field, value=value) from None
    raise InvalidInput(f"Invalid {field}", field=field)


async def configure_calendar(
    repo: Repository,
    competition_id: int,
    user_id: int | None,
    rounds: Sequence[dict],
    points_table: Sequence[int] | None = None,
) -> CalendarSummary:
    """Replace a competition's rounds in one batch.

    Each item may carry ``name``, ``start_date``, ``end_date`` and
    ``lock_at``. Rounds get day indexes 1..n in the given order. Existing
    rounds, with their lineups, results and matches, are dropped.
    """
    competition_id = coerce_id(competition_id, "competition_id")
    if not isinstance(rounds, (list, tuple)) or not rounds:
        raise InvalidInput("rounds must be a non-empty list")

    cleaned: list[dict] = []
    for item in rounds:
        if not isinstance(item, dict):
            raise InvalidInput("Each round must be an object")
        start = parse_datetime(item.get("start_date"), "start_date")
        end = parse_datetime(item.get("end_date"), "end_date")
        if start and end and end < start:
            raise InvalidInput("end_date precedes start_date", name=item.get("name"))
        name = item.get("name")
        cleaned.append(
            {
                "name": name.strip() if isinstance(name, str) else None,
                "start_date": start,
                "end_date": end,
                "lock_at": parse_datetime(item.get("lock_at"), "lock_at"),
            }
        )

    competition = await load_owned_competition(repo, competition_id, user_id)
    async with competition_lock(competition.id):
        created = await repo.replace_rounds(competition.id, cleaned)
        competition = await repo.get_competition(competition.id)
        if competition is None:
            raise NotFound("Competition not found", competition_id=competition_id)
        await refresh_competition(repo, competition, points_table=points_table)

    logger.info("calendar_configured competition=%d rounds=%d", competition_id, len(created))
    return CalendarSummary(competition_id=competition_id, rounds_created=len(created))


async def update_round_lock(
    repo: Repository,
    round_id: int,
    user_id: int | None,
    lock_at: datetime | str | None,
) -> RoundRow:
    """Set or clear the time after which lineups for a round are frozen."""
    round_id = coerce_id(round_id, "round_id")
    parsed = parse_datetime(lock_at, "lock_at")
    await load_owned_round(repo, round_id, user_id)
    row = await repo.set_round_lock(round_id, parsed)
    if row is None:
        raise NotFound("Round not found", round_id=round_id)
    logger.info("round_lock_updated round=%d lock_at=%s", round_id, parsed)
    return row


async def schedule_round_robin(
    repo: Repository,
    competition_id: int,
    user_id: int | None,
    team_ids: Sequence[int] | None = None,
    cycles: int = 1,
    points_table: Sequence[int] | None = None,
) -> ScheduleSummary:
    """Generate and store a round-robin calendar of H2H matches.

    Defaults to every team in the competition. Matches already stored in the
    rounds the schedule consumes are deleted first, including any manually
    edited results in them.

    Raises:
        InvalidInput: fewer than two teams, or a team outside the competition.
        InsufficientRounds: the calendar is too short (``detail`` carries
            ``needed`` and ``present``).
    """
    competition_id = coerce_id(competition_id, "competition_id")
    competition = await load_owned_competition(repo, competition_id, user_id)

    known = {t.id for t in competition.teams}
    chosen = list(team_ids) if team_ids else [t.id for t in competition.teams]
    unknown = [tid for tid in chosen if tid not in known]
    if unknown:
        raise InvalidInput("Teams not in this competition", team_ids=unknown)

    round_ids = [r.id for r in sorted(competition.rounds, key=lambda r: r.day_index)]
    fixtures = generate_round_robin(chosen, round_ids, cycles=cycles)
    used = round_ids[: rounds_needed(len(chosen), cycles)]

    async with competition_lock(competition.id):
        deleted, created = await repo.replace_matches(competition.id, used, fixtures)
        await refresh_competition(repo, competition, points_table=points_table)

    logger.info(
        "schedule_generated competition=%d created=%d deleted=%d rounds=%d",
        competition.id,
        created,
        deleted,
        len(used),
    )
    return ScheduleSummary(
        competition_id=competition.id,
        created=created,
        deleted=deleted,
        rounds_used=len(used),
        has_bye=len(chosen) % 2 == 1,
    )


async def reset_round(
    repo: Repository,
    round_id: int,
    user_id: int | None,
    points_table: Sequence[int] | None = None,
) -> ResetSummary:
    """Delete a round's results, clear its match scores, rebuild standings."""
    round_id = coerce_id(round_id, "round_id")
    round_row = await load_owned_round(repo, round_id, user_id)
    competition_id = round_row.competition_id

    async with competition_lock(competition_id):
        deleted = await repo.delete_player_results(round_id)
        reset = await repo.reset_matches(competition_id, round_id)
        competition = await repo.get_competition(competition_id)
        if competition is None:
            raise NotFound("Competition not found", competition_id=competition_id)
        await refresh_competition(repo, competition, points_table=points_table)

    logger.info("round_reset round=%d results=%d matches=%d", round_id, deleted, reset)
    return ResetSummary(
        round_id=round_id,
        competition_id=competition_id,
        deleted_player_results=deleted,
        matches_reset=reset,
    )


async def list_fixtures(repo: Repository, competition_id: int) -> list[RoundFixtures]:
    """Every round of a competition, by day index, with its matches."""
    competition_id = coerce_id(competition_id, "competition_id")
    competition = await repo.get_competition(competition_id)
    if competition is None:
        raise NotFound("Competition not found", competition_id=competition_id)

    names = {t.id: t.name for t in competition.teams}
    by_round: dict[int, list[FixtureView]] = {}
    for m in await repo.get_matches(competition_id):
        by_round.setdefault(m.round_id, []).append(
            FixtureView(
                match_id=m.id,
                round_id=m.round_id,
                home_team_id=m.home_team_id,
                home_team_name=names.get(m.home_team_id, ""),
                away_team_id=m.away_team_id,
                away_team_name=names.get(m.away_team_id, ""),
                home_score=m.home_score,
                away_score=m.away_score,
                result=MatchResult(m.result) if m.result else None,
            )
        )

    return [
        RoundFixtures(
            round_id=r.id,
            name=r.name,
            day_index=r.day_index,
            matches=by_round.get(r.id, []),
        )
        for r in sorted(competition.rounds, key=lambda r: r.day_index)
    ]
