"""Round-robin schedule generation.

Generates fixtures where every team plays every other team once per cycle,
using the circle method (polygon scheduling).

With N teams (N even) one cycle takes N-1 rounds of N/2 matches. With N odd a
bye placeholder is added, so one cycle takes N rounds and every team sits out
exactly one of them.

Each week consumes one round id from the calendar, in calendar order.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from fantalega.core.errors import InsufficientRounds, InvalidInput

# Bye placeholder; real team ids are never None.
BYE = None


@dataclass
class Fixture:
    """A single scheduled match between two teams."""

    round_id: int
    matchup_index: int
    home_team_id: int
    away_team_id: int


def rounds_needed(team_count: int, cycles: int = 1) -> int:
    """Rounds a full schedule consumes, counting the bye round for odd counts."""
    padded = team_count + (team_count % 2)
    return (padded - 1) * cycles


def generate_round_robin(
    team_ids: Sequence[int],
    round_ids: Sequence[int],
    cycles: int = 1,
) -> list[Fixture]:
    """Generate a round-robin schedule using the circle method.

    In week ``w`` the arrangement is paired end to end: ``arrangement[i]``
    meets ``arrangement[n-1-i]``. On even weeks the first team of a pair is at
    home, on odd weeks the second, which balances home games. After each week
    the arrangement rotates with element 0 fixed and the last element moved
    to the front of the rest. Odd cycles (the return legs of a double
    round-robin) swap home and away.

    Args:
        team_ids: Teams to schedule (at least two, no duplicates).
        round_ids: Available rounds in chronological order.
        cycles: Number of complete round-robin cycles (default 1).

    Returns:
        Fixtures ordered by round, then matchup index.

    Raises:
        InvalidInput: fewer than two teams, duplicate teams, or cycles not a
            positive int.
        InsufficientRounds: not enough rounds for the full schedule.
    """
    if len(team_ids) < 2:
        raise InvalidInput("At least two teams are required", teams=len(team_ids))
    if len(set(team_ids)) != len(team_ids):
        raise InvalidInput("Duplicate team ids in schedule request")
    if isinstance(cycles, bool) or not isinstance(cycles, int) or cycles < 1:
        raise InvalidInput("cycles must be at least 1", cycles=cycles)

    teams: list[int | None] = list(team_ids)
    if len(teams) % 2 == 1:
        teams.append(BYE)

    n = len(teams)
    half = n // 2
    weeks = n - 1

    needed = weeks * cycles
    if len(round_ids) < needed:
        raise InsufficientRounds(needed=needed, present=len(round_ids))

    fixtures: list[Fixture] = []
    week_counter = 0

    for cycle in range(cycles):
        arrangement = list(teams)

        for week in range(weeks):
            round_id = round_ids[week_counter]
            week_counter += 1
            match_idx = 0

            for i in range(half):
                team_a = arrangement[i]
                team_b = arrangement[n - 1 - i]
                if team_a is BYE or team_b is BYE:
                    continue

                if week % 2 == 0:
                    home_id, away_id = team_a, team_b
                else:
                    home_id, away_id = team_b, team_a

                # Return legs swap venues
                if cycle % 2 == 1:
                    home_id, away_id = away_id, home_id

                fixtures.append(
                    Fixture(
                        round_id=round_id,
                        matchup_index=match_idx,
                        home_team_id=home_id,
                        away_team_id=away_id,
                    )
                )
                match_idx += 1

            # Rotate: keep element 0, move last element to the front of the rest
            rotating = arrangement[1:]
            arrangement = [arrangement[0], rotating[-1], *rotating[:-1]]

    return fixtures
