"""
Recalculation Engine — full, idempotent rebuild of the points ledger.

Run after any retention config change, any question rescoring, or on a
commissioner's request. Every team gets its own session and transaction:
the whole 1..N series plus Team.total_points commit together or not at all.
Teams are independent and rebuilt concurrently, bounded by a worker limit.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.config import get_settings
from app.models.models import Team
from app.services.errors import EpisodeOutOfRangeError, LedgerError, NotFoundError
from app.services.ledger import build_team_series, load_team_facts, persist_team_series
from app.services.retention import get_league_season_or_raise

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TeamRecalculation:
    team_id: int
    episodes_recalculated: int
    final_total: int


@dataclass
class RecalculationResult:
    teams_recalculated: int
    episodes_processed: int
    failed_team_ids: list[int] = field(default_factory=list)
    errors: dict[int, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return not self.failed_team_ids

    @property
    def summary(self) -> str:
        message = (
            f"Points recalculated for {self.teams_recalculated} teams "
            f"across {self.episodes_processed} episodes"
        )
        if self.failed_team_ids:
            message += f"; {len(self.failed_team_ids)} team(s) failed"
        return message


async def recalculate_team_history(
    session_factory: async_sessionmaker,
    team_id: int,
    max_episode: int | None = None,
) -> TeamRecalculation:
    """Rebuild one team's series for episodes 1..max_episode in one transaction."""
    async with session_factory() as db:
        async with db.begin():
            team = await db.get(Team, team_id)
            if team is None:
                raise NotFoundError(f"Team {team_id} not found")

            _, season = await get_league_season_or_raise(db, team.league_season_id)
            if max_episode is None:
                max_episode = season.active_episode
            elif max_episode < 0 or max_episode > season.active_episode:
                raise EpisodeOutOfRangeError(max_episode, season.active_episode)

            facts = await load_team_facts(db, team)
            series, scores = build_team_series(facts, max_episode)
            await persist_team_series(db, team, series, scores)
            final_total = team.total_points

    logger.debug("Team %s recalculated through episode %s: %s", team_id, max_episode, final_total)
    return TeamRecalculation(team_id=team_id, episodes_recalculated=max_episode, final_total=final_total)


async def recalculate_teams(
    session_factory: async_sessionmaker,
    team_ids: list[int],
    max_episode: int,
    max_workers: int | None = None,
) -> RecalculationResult:
    """
    Rebuild several teams concurrently. A store or ledger failure only affects
    its own team, whose previous series stays in place; it is reported, not
    raised.
    """
    if max_workers is None:
        max_workers = get_settings().recalc_max_workers
    semaphore = asyncio.Semaphore(max(1, max_workers))
    result = RecalculationResult(teams_recalculated=0, episodes_processed=max_episode)

    async def _run(team_id: int) -> None:
        async with semaphore:
            try:
                await recalculate_team_history(session_factory, team_id, max_episode)
            except (SQLAlchemyError, LedgerError) as e:
                logger.exception("Recalculation failed for team %s", team_id)
                result.failed_team_ids.append(team_id)
                result.errors[team_id] = str(e)
            else:
                result.teams_recalculated += 1

    await asyncio.gather(*(_run(team_id) for team_id in team_ids))
    result.failed_team_ids.sort()
    return result


async def recalculate_season(
    session_factory: async_sessionmaker,
    league_season_id: int,
    max_workers: int | None = None,
) -> RecalculationResult:
    """
    Nuclear option: rebuild every team in the league season through the
    season's active episode.
    """
    async with session_factory() as db:
        _, season = await get_league_season_or_raise(db, league_season_id)
        team_result = await db.execute(
            select(Team.id)
            .where(Team.league_season_id == league_season_id)
            .order_by(Team.created_at, Team.id)
        )
        team_ids = [row[0] for row in team_result.all()]
        active_episode = season.active_episode

    result = await recalculate_teams(session_factory, team_ids, active_episode, max_workers=max_workers)
    if result.succeeded:
        logger.info("League season %s: %s", league_season_id, result.summary)
    else:
        logger.error(
            "League season %s: %s (failed teams: %s)",
            league_season_id, result.summary, result.failed_team_ids,
        )
    return result
