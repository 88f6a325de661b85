from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database import get_db, get_session_factory
from app.models.models import User
from app.schemas.ledger import RecalculationResponse
from app.schemas.retention import (
    RetentionApplyAll, RetentionConfigResponse, RetentionConfigUpdate, RetentionUpdateResponse,
)
from app.api.deps import get_current_user, require_commissioner
from app.services.errors import NotFoundError
from app.services.recalculation import recalculate_season
from app.services.retention import (
    apply_retention_to_all_episodes, get_league_season_or_raise,
    get_retention_config, upsert_retention_config,
)

router = APIRouter(prefix="/api/league-seasons/{league_season_id}/retention", tags=["Retention"])


@router.get("", response_model=list[RetentionConfigResponse])
async def list_retention_config(
    league_season_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    try:
        await get_league_season_or_raise(db, league_season_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return await get_retention_config(db, league_season_id)


@router.put("", response_model=RetentionUpdateResponse)
async def update_retention_config(
    league_season_id: int,
    body: RetentionConfigUpdate,
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    _: User = Depends(require_commissioner),
):
    try:
        configs = await upsert_retention_config(
            db,
            league_season_id,
            [(e.episode_number, e.points_per_castaway) for e in body.episodes],
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    response_configs = [RetentionConfigResponse.model_validate(c) for c in configs]
    # Recalculation reads through its own sessions
    await db.commit()
    result = await recalculate_season(session_factory, league_season_id)
    return RetentionUpdateResponse(
        configs=response_configs,
        recalculation=RecalculationResponse.from_result(result),
    )


@router.post("/apply-all", response_model=RetentionUpdateResponse)
async def apply_retention_to_all(
    league_season_id: int,
    body: RetentionApplyAll,
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    _: User = Depends(require_commissioner),
):
    try:
        configs = await apply_retention_to_all_episodes(db, league_season_id, body.points_per_castaway)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    response_configs = [RetentionConfigResponse.model_validate(c) for c in configs]
    await db.commit()
    result = await recalculate_season(session_factory, league_season_id)
    return RetentionUpdateResponse(
        configs=response_configs,
        recalculation=RecalculationResponse.from_result(result),
    )
