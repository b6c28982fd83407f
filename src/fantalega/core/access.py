"""Ownership checks shared by every mutating operation.

The caller has already verified the bearer credential; what reaches here is
a user id or ``None``. These helpers run before any league-private read or
any write.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fantalega.core.errors import Forbidden, InvalidInput, NotAuthenticated, NotFound

if TYPE_CHECKING:
    from fantalega.db.models import CompetitionRow, RoundRow, TeamRow
    from fantalega.db.repository import Repository


def coerce_id(value: object, field: str) -> int:
    """Validate an identifier: a positive int, or a string holding one."""
    if isinstance(value, bool):
        raise InvalidInput(f"Invalid {field}", field=field)
    if isinstance(value, str) and value.strip().isdecimal():
        value = int(value.strip())
    if not isinstance(value, int) or value <= 0:
        raise InvalidInput(f"Invalid {field}", field=field)
    return value


def require_user(user_id: int | None) -> int:
    if user_id is None:
        raise NotAuthenticated("Unauthorized")
    return user_id


def is_league_owner(competition: CompetitionRow, user_id: int | None) -> bool:
    owner_id = competition.league.owner_id if competition.league else None
    return owner_id is not None and owner_id == user_id


def require_league_owner(competition: CompetitionRow, user_id: int | None) -> None:
    """Raise unless *user_id* owns the league the competition belongs to."""
    if not is_league_owner(competition, require_user(user_id)):
        raise Forbidden("Forbidden", competition_id=competition.id)


def require_team_owner(team: TeamRow, user_id: int | None) -> None:
    if team.user_id is None or team.user_id != require_user(user_id):
        raise Forbidden("Not the owner of this team", team_id=team.id)


async def load_owned_competition(
    repo: Repository,
    competition_id: int,
    user_id: int | None,
) -> CompetitionRow:
    """Fetch a competition the user administers.

    Raises:
        NotAuthenticated: no user.
        NotFound: no such competition.
        Forbidden: the user does not own the league.
    """
    require_user(user_id)
    competition = await repo.get_competition(competition_id)
    if competition is None:
        raise NotFound("Competition not found", competition_id=competition_id)
    require_league_owner(competition, user_id)
    return competition


async def load_owned_round(
    repo: Repository,
    round_id: int,
    user_id: int | None,
) -> RoundRow:
    """Fetch a round whose competition the user administers."""
    require_user(user_id)
    round_row = await repo.get_round(round_id)
    if round_row is None:
        raise NotFound("Round not found", round_id=round_id)
    require_league_owner(round_row.competition, user_id)
    return round_row
