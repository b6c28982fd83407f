"""Generate a round-robin H2H schedule for a competition.

Pairs every team of the competition over its rounds (by day index) with the
circle method. With an odd number of teams one team rests each round. Any
match already stored in the rounds the schedule uses is replaced.

Usage:
    # Preview the pairings (default, writes nothing):
    python scripts/generate_schedule.py 3

    # Double round-robin (return leg with home/away swapped), applied:
    python scripts/generate_schedule.py 3 --cycles 2 --apply
"""

from __future__ import annotations

import asyncio
import os
import sys

from fantalega.config import Settings
from fantalega.core.calendar import schedule_round_robin
from fantalega.core.errors import LeagueError
from fantalega.core.scheduler import generate_round_robin
from fantalega.db.engine import create_engine, get_session
from fantalega.db.repository import Repository


async def generate(competition_id: int, cycles: int = 1, apply: bool = False) -> None:
    db_url = os.environ.get("DATABASE_URL")
    if not db_url:
        print("ERROR: DATABASE_URL not set.")
        sys.exit(1)

    engine = create_engine(db_url)

    async with get_session(engine) as session:
        repo = Repository(session)

        competition = await repo.get_competition(competition_id)
        if competition is None:
            print(f"Competition {competition_id} not found.")
            await engine.dispose()
            return

        names = {t.id: t.name for t in competition.teams}
        rounds = {r.id: r for r in competition.rounds}
        print(f"Competition: {competition.name} ({competition.id})")
        print(f"Teams: {len(names)}  Rounds: {len(rounds)}  Cycles: {cycles}")

        try:
            fixtures = generate_round_robin(list(names), list(rounds), cycles=cycles)
        except LeagueError as exc:
            print(f"ERROR: {exc.message}")
            await engine.dispose()
            return

        current = None
        for fx in fixtures:
            if fx.round_id != current:
                current = fx.round_id
                print(f"\n{rounds[current].name}")
            print(f"  {names[fx.home_team_id]} vs {names[fx.away_team_id]}")

        if not apply:
            print(f"\nRun with --apply to store these {len(fixtures)} matches.")
            await engine.dispose()
            return

        owner_id = competition.league.owner_id
        summary = await schedule_round_robin(
            repo,
            competition.id,
            owner_id,
            cycles=cycles,
            points_table=Settings().fantalega_f1_points,
        )
        print()
        print(f"Deleted: {summary.deleted}")
        print(f"Created: {summary.created}")
        print(f"Rounds used: {summary.rounds_used}")

    await engine.dispose()


def main() -> None:
    cycles = "1"
    if "--cycles" in sys.argv:
        idx = sys.argv.index("--cycles")
        if idx + 1 < len(sys.argv):
            cycles = sys.argv[idx + 1]

    args = [
        a
        for i, a in enumerate(sys.argv[1:], start=1)
        if not a.startswith("--") and sys.argv[i - 1] != "--cycles"
    ]
    if not args or not args[0].isdigit() or not cycles.isdigit():
        print("Usage: python scripts/generate_schedule.py <competition_id> [--cycles N] [--apply]")
        sys.exit(2)

    apply = "--apply" in sys.argv
    asyncio.run(generate(int(args[0]), cycles=int(cycles), apply=apply))


if __name__ == "__main__":
    main()
