"""
Retention config store — points per actively rostered castaway, per episode.

Commissioners may change these at any time, including for episodes already
scored. Callers are responsible for triggering a season recalculation after a
write (see app.api.retention).
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.models import LeagueSeason, RetentionConfig, Season
from app.services.errors import NotFoundError

logger = logging.getLogger(__name__)


async def get_league_season_or_raise(db: AsyncSession, league_season_id: int) -> tuple[LeagueSeason, Season]:
    result = await db.execute(
        select(LeagueSeason, Season)
        .join(Season, LeagueSeason.season_id == Season.id)
        .where(LeagueSeason.id == league_season_id)
    )
    row = result.first()
    if row is None:
        raise NotFoundError(f"League season {league_season_id} not found")
    return row[0], row[1]


async def get_retention_config(db: AsyncSession, league_season_id: int) -> list[RetentionConfig]:
    result = await db.execute(
        select(RetentionConfig)
        .where(RetentionConfig.league_season_id == league_season_id)
        .order_by(RetentionConfig.episode_number)
    )
    return list(result.scalars().all())


async def get_retention_map(db: AsyncSession, league_season_id: int) -> dict[int, int]:
    """{episode_number: points_per_castaway}. Episodes without a row are absent."""
    configs = await get_retention_config(db, league_season_id)
    return {c.episode_number: c.points_per_castaway for c in configs}


async def upsert_retention_config(
    db: AsyncSession,
    league_season_id: int,
    episodes: list[tuple[int, int]],
) -> list[RetentionConfig]:
    """Set points_per_castaway for each (episode_number, points) pair."""
    await get_league_season_or_raise(db, league_season_id)

    existing = {c.episode_number: c for c in await get_retention_config(db, league_season_id)}
    for episode_number, points in episodes:
        if episode_number < 1:
            raise ValueError(f"Episode number must be at least 1, got {episode_number}")
        config = existing.get(episode_number)
        if config is None:
            config = RetentionConfig(
                league_season_id=league_season_id,
                episode_number=episode_number,
                points_per_castaway=points,
            )
            db.add(config)
            existing[episode_number] = config
        else:
            config.points_per_castaway = points

    await db.flush()
    logger.info(
        "Retention config updated for league season %s: %s",
        league_season_id, dict(episodes),
    )
    return await get_retention_config(db, league_season_id)


async def apply_retention_to_all_episodes(
    db: AsyncSession, league_season_id: int, points_per_castaway: int
) -> list[RetentionConfig]:
    """Same points for every planned episode of the season."""
    _, season = await get_league_season_or_raise(db, league_season_id)
    episodes = [(n, points_per_castaway) for n in range(1, season.episode_count + 1)]
    return await upsert_retention_config(db, league_season_id, episodes)
