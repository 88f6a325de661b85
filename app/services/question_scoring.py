"""
Question scoring and answer submission.

Scoring a question (or rescoring it with a different correct answer) marks
it scored and then rebuilds the series of every team that answered, so the
stored points never drift from what the answers are worth.

Answers for an episode can be changed until it airs. Before that, episode
results show a team only its own answers.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.models import Episode, LeagueQuestion, PlayerAnswer, QuestionType, Team
from app.services.answer_scorer import normalize_answer
from app.services.errors import EpisodeOutOfRangeError, InvalidAnswerError, NotFoundError
from app.services.ledger import check_episode_range
from app.services.recalculation import RecalculationResult, recalculate_teams
from app.services.retention import get_league_season_or_raise

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


async def can_submit_answers(
    db: AsyncSession, season_id: int, episode_number: int, now: datetime | None = None
) -> bool:
    """Open until the episode's air date. No episode row or no air date means open."""
    result = await db.execute(
        select(Episode.air_date).where(
            Episode.season_id == season_id,
            Episode.episode_number == episode_number,
        )
    )
    air_date = result.scalar_one_or_none()
    if air_date is None:
        return True
    return (now or datetime.now(timezone.utc)) < _as_utc(air_date)


async def score_questions(
    db: AsyncSession,
    session_factory: async_sessionmaker,
    league_season_id: int,
    correct_answers: list[tuple[int, str]],
    max_workers: int | None = None,
) -> dict:
    """
    Set the correct answer on each (question_id, correct_answer) pair and
    recompute the affected teams.

    Commits the question changes on `db` before the per-team rebuilds, which
    run in their own sessions.
    """
    _, season = await get_league_season_or_raise(db, league_season_id)

    question_ids = [qid for qid, _ in correct_answers]
    result = await db.execute(
        select(LeagueQuestion).where(
            LeagueQuestion.id.in_(question_ids),
            LeagueQuestion.league_season_id == league_season_id,
        )
    )
    questions = {q.id: q for q in result.scalars().all()}
    missing = sorted(set(question_ids) - set(questions))
    if missing:
        raise NotFoundError(f"Questions {missing} not found in league season {league_season_id}")

    for question in questions.values():
        check_episode_range(question.episode_number, season.active_episode)

    for question_id, correct_answer in correct_answers:
        question = questions[question_id]
        if question.is_scored and normalize_answer(question.correct_answer) != normalize_answer(correct_answer):
            logger.info(
                "Rescoring question %s: %r -> %r",
                question.id, question.correct_answer, correct_answer,
            )
        question.correct_answer = correct_answer
        question.is_scored = True

    team_result = await db.execute(
        select(PlayerAnswer.team_id)
        .where(PlayerAnswer.question_id.in_(question_ids))
        .distinct()
    )
    team_ids = sorted(row[0] for row in team_result.all())
    episodes = sorted({q.episode_number for q in questions.values()})
    active_episode = season.active_episode

    await db.commit()

    recalculation = await recalculate_teams(
        session_factory, team_ids, active_episode, max_workers=max_workers
    )
    if not recalculation.succeeded:
        logger.error(
            "Scoring questions %s: ledger rebuild failed for teams %s",
            question_ids, recalculation.failed_team_ids,
        )

    return {
        "scored_count": len(questions),
        "episodes": episodes,
        "recalculation": recalculation,
    }


async def score_question(
    db: AsyncSession,
    session_factory: async_sessionmaker,
    league_season_id: int,
    question_id: int,
    correct_answer: str,
) -> RecalculationResult:
    result = await score_questions(db, session_factory, league_season_id, [(question_id, correct_answer)])
    return result["recalculation"]


async def submit_answer(
    db: AsyncSession,
    league_season_id: int,
    question_id: int,
    team: Team,
    answer_text: str,
    wager_amount: int | None = None,
) -> PlayerAnswer:
    """Create or replace a team's answer to a question that is still open."""
    question = await db.get(LeagueQuestion, question_id)
    if question is None or question.league_season_id != league_season_id:
        raise NotFoundError(f"Question {question_id} not found in league season {league_season_id}")
    if team.league_season_id != league_season_id:
        raise InvalidAnswerError("Team does not belong to this league season")
    if question.is_scored:
        raise InvalidAnswerError("Question has already been scored")

    _, season = await get_league_season_or_raise(db, league_season_id)
    if not await can_submit_answers(db, season.id, question.episode_number):
        raise InvalidAnswerError(
            f"Submission deadline has passed for episode {question.episode_number}"
        )

    if question.question_type == QuestionType.SINGLE_CHOICE and question.options:
        if answer_text not in question.options:
            raise InvalidAnswerError("Answer is not one of the question's options")

    if not question.is_wager:
        wager_amount = None
    elif wager_amount is not None:
        if question.min_wager is not None and wager_amount < question.min_wager:
            raise InvalidAnswerError(f"Wager amount must be at least {question.min_wager}")
        if question.max_wager is not None and wager_amount > question.max_wager:
            raise InvalidAnswerError(f"Wager amount must not exceed {question.max_wager}")

    result = await db.execute(
        select(PlayerAnswer).where(
            PlayerAnswer.question_id == question_id,
            PlayerAnswer.team_id == team.id,
        )
    )
    answer = result.scalar_one_or_none()
    if answer is None:
        answer = PlayerAnswer(question_id=question_id, team_id=team.id)
        db.add(answer)

    answer.answer_text = answer_text
    answer.wager_amount = wager_amount
    answer.points_earned = None
    await db.flush()
    await db.refresh(answer)
    return answer


async def get_episode_results(
    db: AsyncSession,
    league_season_id: int,
    episode_number: int,
    viewer_team_id: int | None = None,
) -> dict:
    """
    Every question of an episode with the submitted answers and the points
    they earned. While submissions are open only the viewer's own answers
    are included, and correct answers are hidden until a question is scored.
    """
    _, season = await get_league_season_or_raise(db, league_season_id)
    if episode_number < 1 or episode_number > season.episode_count:
        raise EpisodeOutOfRangeError(episode_number, season.episode_count)

    submissions_open = await can_submit_answers(db, season.id, episode_number)

    question_result = await db.execute(
        select(LeagueQuestion)
        .where(
            LeagueQuestion.league_season_id == league_season_id,
            LeagueQuestion.episode_number == episode_number,
        )
        .order_by(LeagueQuestion.sort_order, LeagueQuestion.id)
    )
    questions = question_result.scalars().all()

    answers_by_question = {q.id: [] for q in questions}
    if questions:
        stmt = (
            select(PlayerAnswer, Team)
            .join(Team, PlayerAnswer.team_id == Team.id)
            .where(PlayerAnswer.question_id.in_(answers_by_question))
            .order_by(Team.id)
        )
        if submissions_open:
            stmt = stmt.where(PlayerAnswer.team_id == viewer_team_id)
        answer_result = await db.execute(stmt)
        for answer, team in answer_result.all():
            answers_by_question[answer.question_id].append((answer, team))

    results = []
    for question in questions:
        answers = []
        for answer, team in answers_by_question[question.id]:
            is_correct = None
            if question.is_scored:
                given = normalize_answer(answer.answer_text)
                is_correct = bool(given) and given == normalize_answer(question.correct_answer)
            answers.append({
                "team_id": team.id,
                "team_name": team.name,
                "answer_text": answer.answer_text,
                "wager_amount": answer.wager_amount,
                "wager_clamped": answer.wager_clamped,
                "is_correct": is_correct,
                "points_earned": answer.points_earned,
            })
        results.append({
            "id": question.id,
            "text": question.text,
            "question_type": question.question_type,
            "options": question.options,
            "point_value": question.point_value,
            "is_wager": question.is_wager,
            "is_scored": question.is_scored,
            "correct_answer": question.correct_answer if question.is_scored else None,
            "answers": answers,
        })

    return {
        "episode_number": episode_number,
        "submissions_open": submissions_open,
        "questions": results,
    }
