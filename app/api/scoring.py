from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database import get_db, get_session_factory
from app.models.models import Team, User
from app.schemas.ledger import RecalculationResponse
from app.schemas.questions import (
    AnswerResponse, AnswerSubmit, EpisodeResultsResponse, ScoreQuestionsRequest, ScoreQuestionsResponse,
)
from app.api.deps import get_current_team, get_current_user, require_commissioner
from app.services.errors import NotFoundError
from app.services.question_scoring import get_episode_results, score_questions, submit_answer
from app.services.recalculation import recalculate_season
from app.services.standings import get_team_for_owner

router = APIRouter(prefix="/api/league-seasons/{league_season_id}", tags=["Scoring"])


@router.post("/recalculate", response_model=RecalculationResponse)
async def force_recalculate(
    league_season_id: int,
    session_factory: async_sessionmaker = Depends(get_session_factory),
    _: User = Depends(require_commissioner),
):
    try:
        result = await recalculate_season(session_factory, league_season_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return RecalculationResponse.from_result(result)


@router.post("/questions/score", response_model=ScoreQuestionsResponse)
async def score_league_questions(
    league_season_id: int,
    body: ScoreQuestionsRequest,
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    _: User = Depends(require_commissioner),
):
    try:
        result = await score_questions(
            db,
            session_factory,
            league_season_id,
            [(a.question_id, a.correct_answer) for a in body.answers],
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return ScoreQuestionsResponse(
        scored_count=result["scored_count"],
        episodes=result["episodes"],
        recalculation=RecalculationResponse.from_result(result["recalculation"]),
    )


@router.post("/questions/{question_id}/answers", response_model=AnswerResponse)
async def submit_question_answer(
    league_season_id: int,
    question_id: int,
    body: AnswerSubmit,
    db: AsyncSession = Depends(get_db),
    team: Team = Depends(get_current_team),
):
    try:
        return await submit_answer(
            db, league_season_id, question_id, team, body.answer_text, body.wager_amount
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/episodes/{episode_number}/results", response_model=EpisodeResultsResponse)
async def episode_results(
    league_season_id: int,
    episode_number: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        viewer_team_id = (await get_team_for_owner(db, league_season_id, current_user)).id
    except NotFoundError:
        # Commissioners without a team still see results once answers lock
        viewer_team_id = None

    try:
        return await get_episode_results(db, league_season_id, episode_number, viewer_team_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
