from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.models.models import User
from app.schemas.ledger import (
    StandingsEntry, StandingsResponse, TeamEpisodePointsResponse,
    TeamSeriesResponse, TeamTotalResponse,
)
from app.api.deps import get_current_user
from app.services.errors import NotFoundError
from app.services.standings import (
    get_standings, get_team_episode_series, get_team_or_raise, get_team_total,
)

router = APIRouter(prefix="/api/league-seasons/{league_season_id}", tags=["Standings"])


async def _get_team_in_league_season_or_404(db: AsyncSession, league_season_id: int, team_id: int):
    try:
        team = await get_team_or_raise(db, team_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if team.league_season_id != league_season_id:
        raise HTTPException(status_code=404, detail="Team not found in this league season")
    return team


@router.get("/standings", response_model=StandingsResponse)
async def standings(
    league_season_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    try:
        current_episode, rows = await get_standings(db, league_season_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return StandingsResponse(
        league_season_id=league_season_id,
        current_episode=current_episode,
        entries=[StandingsEntry.model_validate(r) for r in rows],
    )


@router.get("/teams/{team_id}/episodes", response_model=TeamSeriesResponse)
async def team_episode_series(
    league_season_id: int,
    team_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    await _get_team_in_league_season_or_404(db, league_season_id, team_id)
    series = await get_team_episode_series(db, team_id)
    return TeamSeriesResponse(
        team_id=team_id,
        episodes=[TeamEpisodePointsResponse.model_validate(row) for row in series],
    )


@router.get("/teams/{team_id}/total", response_model=TeamTotalResponse)
async def team_total(
    league_season_id: int,
    team_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    await _get_team_in_league_season_or_404(db, league_season_id, team_id)
    return TeamTotalResponse(team_id=team_id, total_points=await get_team_total(db, team_id))
