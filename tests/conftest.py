"""
Shared fixtures: a fresh SQLite database per test and a builder for the
league facts the ledger reads (rosters, questions, answers, retention).
"""
import os

# Must be set before app.core.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RECALC_MAX_WORKERS", "1")

from datetime import datetime
from types import SimpleNamespace

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.core.database import Base
from app.models.models import (
    Castaway, Episode, League, LeagueQuestion, LeagueSeason, PlayerAnswer, QuestionType,
    RetentionConfig, RosterEntry, Season, Team, TeamEpisodePoints, User,
)


class LeagueBuilder:
    """Writes test facts through short-lived sessions, each committed."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def create_league_season(
        self,
        active_episode: int = 3,
        episode_count: int = 14,
        team_count: int = 2,
        castaway_count: int = 8,
        season_number: int = 50,
    ) -> SimpleNamespace:
        async with self.session_factory() as db:
            commissioner = User(username=f"commish{season_number}", display_name="Commish", is_commissioner=True)
            owners = [
                User(username=f"owner{season_number}_{i}", display_name=f"Owner {i}")
                for i in range(team_count)
            ]
            season = Season(
                season_number=season_number, name=f"Survivor {season_number}",
                episode_count=episode_count, active_episode=active_episode,
            )
            league = League(name=f"League {season_number}")
            db.add_all([commissioner, season, league, *owners])
            await db.flush()

            league_season = LeagueSeason(league_id=league.id, season_id=season.id)
            castaways = [Castaway(season_id=season.id, name=f"Castaway {i}") for i in range(castaway_count)]
            db.add(league_season)
            db.add_all(castaways)
            await db.flush()

            teams = []
            for owner in owners:
                team = Team(league_season_id=league_season.id, owner_id=owner.id, name=f"Team {owner.display_name}")
                db.add(team)
                await db.flush()
                teams.append(team)

            await db.commit()
            return SimpleNamespace(
                league_season_id=league_season.id,
                season_id=season.id,
                commissioner_id=commissioner.id,
                owner_ids=[o.id for o in owners],
                team_ids=[t.id for t in teams],
                castaway_ids=[c.id for c in castaways],
            )

    async def add_roster(self, team_id: int, castaway_id: int, start: int, end: int | None = None) -> int:
        async with self.session_factory() as db:
            entry = RosterEntry(team_id=team_id, castaway_id=castaway_id, start_episode=start, end_episode=end)
            db.add(entry)
            await db.commit()
            return entry.id

    async def add_question(
        self,
        league_season_id: int,
        episode: int,
        point_value: int = 1,
        is_wager: bool = False,
        min_wager: int | None = None,
        max_wager: int | None = None,
        correct_answer: str | None = None,
        question_type: QuestionType = QuestionType.FREE_TEXT,
        options: list[str] | None = None,
    ) -> int:
        async with self.session_factory() as db:
            question = LeagueQuestion(
                league_season_id=league_season_id,
                episode_number=episode,
                question_type=question_type,
                text=f"Question for episode {episode}",
                options=options,
                point_value=point_value,
                is_wager=is_wager,
                min_wager=min_wager,
                max_wager=max_wager,
                correct_answer=correct_answer,
                is_scored=correct_answer is not None,
            )
            db.add(question)
            await db.commit()
            return question.id

    async def add_answer(self, question_id: int, team_id: int, text: str, wager: int | None = None) -> int:
        async with self.session_factory() as db:
            answer = PlayerAnswer(question_id=question_id, team_id=team_id, answer_text=text, wager_amount=wager)
            db.add(answer)
            await db.commit()
            return answer.id

    async def set_retention(self, league_season_id: int, points: dict[int, int]) -> None:
        async with self.session_factory() as db:
            result = await db.execute(
                select(RetentionConfig).where(RetentionConfig.league_season_id == league_season_id)
            )
            existing = {c.episode_number: c for c in result.scalars().all()}
            for episode, value in points.items():
                if episode in existing:
                    existing[episode].points_per_castaway = value
                else:
                    db.add(RetentionConfig(
                        league_season_id=league_season_id, episode_number=episode, points_per_castaway=value,
                    ))
            await db.commit()

    async def add_episode(self, season_id: int, episode_number: int, air_date: datetime | None = None) -> int:
        async with self.session_factory() as db:
            episode = Episode(season_id=season_id, episode_number=episode_number, air_date=air_date)
            db.add(episode)
            await db.commit()
            return episode.id

    async def set_active_episode(self, season_id: int, active_episode: int) -> None:
        async with self.session_factory() as db:
            season = await db.get(Season, season_id)
            season.active_episode = active_episode
            await db.commit()

    async def rows(self, team_id: int) -> list[tuple]:
        """Full ledger rows, ids included, ordered by episode."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(TeamEpisodePoints)
                .where(TeamEpisodePoints.team_id == team_id)
                .order_by(TeamEpisodePoints.episode_number)
            )
            return [
                (r.id, r.team_id, r.episode_number, r.question_points,
                 r.retention_points, r.total_episode_points, r.running_total)
                for r in result.scalars().all()
            ]

    async def series(self, team_id: int) -> list[tuple]:
        """(episode, question, retention, total, running) per episode."""
        return [row[2:] for row in await self.rows(team_id)]

    async def total(self, team_id: int) -> int:
        async with self.session_factory() as db:
            team = await db.get(Team, team_id)
            return team.total_points

    async def answer(self, answer_id: int) -> PlayerAnswer:
        async with self.session_factory() as db:
            return await db.get(PlayerAnswer, answer_id)


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def builder(session_factory):
    return LeagueBuilder(session_factory)


@pytest.fixture
async def league(builder):
    """Two teams, three aired episodes, nothing rostered yet."""
    return await builder.create_league_season()
