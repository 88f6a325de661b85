"""
Answer scoring — points for one submitted answer to one scored question.

Pure: nothing here touches the database. The ledger persists the result
onto the answer row.
"""

import logging
from dataclasses import dataclass

from app.models.models import LeagueQuestion, PlayerAnswer
from app.services.errors import QuestionNotScoredError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnswerScore:
    points: int
    is_correct: bool
    wager_amount: int | None = None  # Effective (post-clamp) wager
    wager_clamped: bool = False


def normalize_answer(text: str | None) -> str:
    """Case-insensitive, surrounding whitespace ignored. Nothing else."""
    if text is None:
        return ""
    return text.strip().lower()


def clamp_wager(amount: int, min_wager: int | None, max_wager: int | None) -> tuple[int, bool]:
    """Clamp a wager into [min_wager, max_wager]. Returns (wager, was_clamped)."""
    low = min_wager if min_wager is not None else 0
    clamped = max(amount, low)
    if max_wager is not None:
        clamped = min(clamped, max_wager)
    return clamped, clamped != amount


def score_answer(question: LeagueQuestion, answer: PlayerAnswer) -> AnswerScore:
    """
    Signed points earned by one answer.

    Non-wager questions award point_value for a match and 0 otherwise.
    Wager questions win or lose the whole wager. An empty answer, or a wager
    question answered without a wager, always scores 0.
    """
    if not question.is_scored:
        raise QuestionNotScoredError(f"Question {question.id} has not been scored")

    given = normalize_answer(answer.answer_text)
    if not given:
        return AnswerScore(points=0, is_correct=False)

    is_correct = given == normalize_answer(question.correct_answer)

    if not question.is_wager:
        return AnswerScore(points=question.point_value if is_correct else 0, is_correct=is_correct)

    if answer.wager_amount is None:
        return AnswerScore(points=0, is_correct=is_correct)

    wager, was_clamped = clamp_wager(answer.wager_amount, question.min_wager, question.max_wager)
    if was_clamped:
        logger.warning(
            "Wager %s on question %s by team %s outside [%s, %s]; scored as %s",
            answer.wager_amount, question.id, answer.team_id,
            question.min_wager, question.max_wager, wager,
        )
    return AnswerScore(
        points=wager if is_correct else -wager,
        is_correct=is_correct,
        wager_amount=wager,
        wager_clamped=was_clamped,
    )
