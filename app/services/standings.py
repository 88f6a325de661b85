"""
Standings — read-only projection of the ledger.

Rank 1 is the highest running total at the current episode. Ties go to the
team created first, so ranks are always 1..n with no shared places.
"""

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.models import Team, TeamEpisodePoints, User
from app.services.errors import NotFoundError
from app.services.retention import get_league_season_or_raise


@dataclass
class StandingRow:
    team_id: int
    team_name: str
    owner_id: int
    rank: int
    previous_rank: int | None
    rank_change: int  # positive = moved up
    running_total: int
    points_delta: int
    total_points: int


def _running_total_at(series, episode: int) -> int:
    """Running total at the episode, or the latest one before it."""
    total = 0
    for row in series:
        if row.episode_number > episode:
            break
        total = row.running_total
    return total


def rank_teams(teams, totals: dict[int, int]) -> dict[int, int]:
    """{team_id: rank}; ties broken by creation order."""
    created_order = sorted(teams, key=lambda t: (t.created_at is None, t.created_at, t.id))
    position = {t.id: i for i, t in enumerate(created_order)}
    ordered = sorted(teams, key=lambda t: (-totals.get(t.id, 0), position[t.id]))
    return {t.id: rank for rank, t in enumerate(ordered, 1)}


def project_standings(teams, series_by_team: dict[int, list], current_episode: int) -> list[StandingRow]:
    teams = list(teams)
    current = {
        t.id: _running_total_at(series_by_team.get(t.id, []), current_episode) for t in teams
    }
    ranks = rank_teams(teams, current)

    previous_ranks = {}
    previous = {t.id: 0 for t in teams}
    if current_episode > 1:
        previous = {
            t.id: _running_total_at(series_by_team.get(t.id, []), current_episode - 1) for t in teams
        }
        previous_ranks = rank_teams(teams, previous)

    rows = []
    for team in teams:
        previous_rank = previous_ranks.get(team.id)
        rows.append(StandingRow(
            team_id=team.id,
            team_name=team.name,
            owner_id=team.owner_id,
            rank=ranks[team.id],
            previous_rank=previous_rank,
            rank_change=(previous_rank - ranks[team.id]) if previous_rank is not None else 0,
            running_total=current[team.id],
            points_delta=current[team.id] - previous[team.id],
            total_points=team.total_points or 0,
        ))

    rows.sort(key=lambda r: r.rank)
    return rows


async def get_standings(db: AsyncSession, league_season_id: int) -> tuple[int, list[StandingRow]]:
    """Returns (current_episode, rows)."""
    _, season = await get_league_season_or_raise(db, league_season_id)

    team_result = await db.execute(
        select(Team).where(Team.league_season_id == league_season_id)
    )
    teams = team_result.scalars().all()

    series_by_team = {t.id: [] for t in teams}
    if teams:
        points_result = await db.execute(
            select(TeamEpisodePoints)
            .where(TeamEpisodePoints.team_id.in_(series_by_team))
            .order_by(TeamEpisodePoints.team_id, TeamEpisodePoints.episode_number)
        )
        for row in points_result.scalars().all():
            series_by_team[row.team_id].append(row)

    return season.active_episode, project_standings(teams, series_by_team, season.active_episode)


async def get_team_or_raise(db: AsyncSession, team_id: int) -> Team:
    team = await db.get(Team, team_id)
    if team is None:
        raise NotFoundError(f"Team {team_id} not found")
    return team


async def get_team_for_owner(db: AsyncSession, league_season_id: int, owner: User) -> Team:
    result = await db.execute(
        select(Team).where(Team.league_season_id == league_season_id, Team.owner_id == owner.id)
    )
    team = result.scalar_one_or_none()
    if team is None:
        raise NotFoundError("You do not have a team in this league season")
    return team


async def get_team_episode_series(db: AsyncSession, team_id: int) -> list[TeamEpisodePoints]:
    await get_team_or_raise(db, team_id)
    result = await db.execute(
        select(TeamEpisodePoints)
        .where(TeamEpisodePoints.team_id == team_id)
        .order_by(TeamEpisodePoints.episode_number)
    )
    return list(result.scalars().all())


async def get_team_total(db: AsyncSession, team_id: int) -> int:
    """Cached total. May briefly lag a just-submitted answer."""
    team = await get_team_or_raise(db, team_id)
    return team.total_points or 0
