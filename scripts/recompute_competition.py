"""Rebuild the derived standings of one competition.

Re-resolves every H2H match from stored results and lineups and rewrites the
F1 and H2H standings tables. Running it twice on unchanged data updates no
match the second time.

Usage:
    # Dry run (default: computes everything, then rolls back):
    python scripts/recompute_competition.py 3

    # Only the H2H side, and keep the result:
    python scripts/recompute_competition.py 3 --mode h2h --apply
"""

from __future__ import annotations

import asyncio
import os
import sys

from fantalega.config import Settings
from fantalega.core.errors import LeagueError
from fantalega.core.recompute import recompute_competition
from fantalega.db.engine import create_engine, get_session
from fantalega.db.repository import Repository


async def recompute(competition_id: int, mode: str, apply: bool = False) -> None:
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

        # Act as the league owner.
        owner_id = competition.league.owner_id
        print(f"Competition: {competition.name} ({competition.id}) [type={competition.type}]")

        try:
            summary = await recompute_competition(
                repo,
                competition.id,
                owner_id,
                mode,
                points_table=Settings().fantalega_f1_points,
            )
        except LeagueError as exc:
            print(f"ERROR: {exc.message}")
            await session.rollback()
            await engine.dispose()
            return

        if summary.f1 is not None:
            print(
                f"F1:  {summary.f1.rounds_processed} rounds processed, "
                f"{summary.f1.teams_evaluated} teams"
            )
        if summary.h2h is not None:
            print(
                f"H2H: {summary.h2h.matches_evaluated} matches evaluated, "
                f"{summary.h2h.matches_updated} updated, "
                f"{summary.h2h.matches_pending} pending"
            )

        if not apply:
            await session.rollback()
            print("\nDry run: nothing written. Run with --apply to keep these changes.")

    await engine.dispose()


def main() -> None:
    mode = "all"
    if "--mode" in sys.argv:
        idx = sys.argv.index("--mode")
        if idx + 1 < len(sys.argv):
            mode = sys.argv[idx + 1]

    args = [
        a
        for i, a in enumerate(sys.argv[1:], start=1)
        if not a.startswith("--") and sys.argv[i - 1] != "--mode"
    ]
    if not args or not args[0].isdigit():
        print(
            "Usage: python scripts/recompute_competition.py <competition_id> "
            "[--mode MODE] [--apply]"
        )
        sys.exit(2)

    apply = "--apply" in sys.argv
    asyncio.run(recompute(int(args[0]), mode, apply=apply))


if __name__ == "__main__":
    main()
