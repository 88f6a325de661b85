"""
Seed script — Creates a demo league season with teams, rosters, questions
and retention config, then builds the ledger.
Run with: python -m app.scripts.seed
"""
import asyncio
import sys
import os
from datetime import datetime, timedelta, timezone

# Ensure project root is on the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from sqlalchemy import select
from app.core.database import AsyncSessionLocal, engine, Base
from app.models.models import (
    User, Season, Episode, League, LeagueSeason, Castaway, Team, RosterEntry,
    LeagueQuestion, PlayerAnswer, QuestionType, RetentionConfig,
)
from app.services.recalculation import recalculate_season

USERS = [
    {"username": "eric", "display_name": "Eric", "is_commissioner": True},
    {"username": "calvin", "display_name": "Calvin", "is_commissioner": False},
    {"username": "jake", "display_name": "Jake", "is_commissioner": False},
    {"username": "josh", "display_name": "Josh", "is_commissioner": False},
]

CASTAWAYS = [
    "Aubry", "Cirie", "Coach", "Colby", "Genevieve", "Jonathan",
    "Kamilla", "Ozzy", "Rizo", "Savannah", "Tiffany", "Kyle",
]

ACTIVE_EPISODE = 3
PREMIERE = datetime(2026, 2, 25, 20, 0, tzinfo=timezone.utc)
RETENTION_POINTS = 2


async def seed():
    # Create tables if they don't exist
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        result = await db.execute(select(Season).where(Season.season_number == 50))
        if result.scalar_one_or_none():
            print("  Season 50 already exists, skipping.")
            return

        users = []
        for user_data in USERS:
            user = User(**user_data)
            db.add(user)
            users.append(user)
            print(f"  Created user: {user_data['display_name']} ({'commissioner' if user_data['is_commissioner'] else 'player'})")

        season = Season(season_number=50, name="Survivor 50", episode_count=14, active_episode=ACTIVE_EPISODE)
        league = League(name="Island Insiders")
        db.add_all([season, league])
        await db.flush()

        # Weekly schedule; answers lock at air time
        db.add_all([
            Episode(season_id=season.id, episode_number=n, air_date=PREMIERE + timedelta(weeks=n - 1))
            for n in range(1, season.episode_count + 1)
        ])

        league_season = LeagueSeason(league_id=league.id, season_id=season.id)
        castaways = [Castaway(season_id=season.id, name=name) for name in CASTAWAYS]
        db.add(league_season)
        db.add_all(castaways)
        await db.flush()

        # Three castaways per team; the last team swaps one out after episode 2
        teams = []
        for i, user in enumerate(users):
            team = Team(league_season_id=league_season.id, owner_id=user.id, name=f"Team {user.display_name}")
            db.add(team)
            await db.flush()
            teams.append(team)
            for castaway in castaways[i * 3:(i + 1) * 3]:
                db.add(RosterEntry(team_id=team.id, castaway_id=castaway.id, start_episode=1))
        await db.flush()

        swap_out = (await db.execute(
            select(RosterEntry).where(RosterEntry.team_id == teams[-1].id).order_by(RosterEntry.id)
        )).scalars().first()
        swap_out.end_episode = 2

        for episode in range(1, ACTIVE_EPISODE + 1):
            db.add(RetentionConfig(
                league_season_id=league_season.id, episode_number=episode, points_per_castaway=RETENTION_POINTS,
            ))

        first_boot = LeagueQuestion(
            league_season_id=league_season.id, episode_number=1, question_type=QuestionType.SINGLE_CHOICE,
            text="Who is the first boot?", options=CASTAWAYS, point_value=3,
            correct_answer="Kyle", is_scored=True,
        )
        idol_wager = LeagueQuestion(
            league_season_id=league_season.id, episode_number=2, question_type=QuestionType.FREE_TEXT,
            text="Who finds the first idol?", point_value=1, is_wager=True, min_wager=1, max_wager=10,
            correct_answer="Rizo", is_scored=True,
        )
        db.add_all([first_boot, idol_wager])
        await db.flush()

        picks = [("Kyle", "Rizo", 5), ("Tiffany", "rizo ", 10), ("Kyle", "Ozzy", 4), ("Colby", None, None)]
        for team, (boot, idol, wager) in zip(teams, picks):
            db.add(PlayerAnswer(question_id=first_boot.id, team_id=team.id, answer_text=boot))
            if idol is not None:
                db.add(PlayerAnswer(question_id=idol_wager.id, team_id=team.id, answer_text=idol, wager_amount=wager))

        await db.commit()
        league_season_id = league_season.id

    result = await recalculate_season(AsyncSessionLocal, league_season_id)
    print(f"  {result.summary}")
    print("\nSeed complete!")


if __name__ == "__main__":
    print("Seeding Survivor League Ledger...\n")
    asyncio.run(seed())
