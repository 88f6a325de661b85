"""
Force a full ledger rebuild for one league season.
Run with: python -m app.scripts.recalculate <league_season_id> [--workers N]
"""
import argparse
import asyncio
import logging
import sys
import os

# Ensure project root is on the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from app.core.config import get_settings
from app.core.database import AsyncSessionLocal, engine
from app.services.errors import NotFoundError
from app.services.recalculation import recalculate_season


async def run(league_season_id: int, workers: int | None) -> int:
    try:
        result = await recalculate_season(AsyncSessionLocal, league_season_id, max_workers=workers)
    except NotFoundError as e:
        print(f"  {e}")
        return 1
    finally:
        await engine.dispose()

    print(f"  {result.summary}")
    for team_id, error in result.errors.items():
        print(f"  Team {team_id} failed: {error}")
    return 0 if result.succeeded else 2


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("league_season_id", type=int)
    parser.add_argument("--workers", type=int, default=None, help="Concurrent team rebuilds")
    args = parser.parse_args(argv)

    logging.basicConfig(level=get_settings().log_level)
    return asyncio.run(run(args.league_season_id, args.workers))


if __name__ == "__main__":
    sys.exit(main())
