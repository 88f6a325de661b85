from pydantic import BaseModel, Field

from app.models.models import QuestionType
from app.schemas.ledger import RecalculationResponse


class CorrectAnswerInput(BaseModel):
    question_id: int
    correct_answer: str = Field(..., min_length=1)


class ScoreQuestionsRequest(BaseModel):
    answers: list[CorrectAnswerInput] = Field(..., min_length=1)


class ScoreQuestionsResponse(BaseModel):
    scored_count: int
    episodes: list[int]
    recalculation: RecalculationResponse


class AnswerSubmit(BaseModel):
    answer_text: str
    wager_amount: int | None = None


class AnswerResponse(BaseModel):
    id: int
    question_id: int
    team_id: int
    answer_text: str
    wager_amount: int | None
    points_earned: int | None

    model_config = {"from_attributes": True}


class EpisodeAnswerResult(BaseModel):
    team_id: int
    team_name: str
    answer_text: str
    wager_amount: int | None
    wager_clamped: bool
    is_correct: bool | None  # None until the question is scored
    points_earned: int | None


class EpisodeQuestionResult(BaseModel):
    id: int
    text: str
    question_type: QuestionType
    options: list[str] | None
    point_value: int
    is_wager: bool
    is_scored: bool
    correct_answer: str | None
    answers: list[EpisodeAnswerResult]


class EpisodeResultsResponse(BaseModel):
    episode_number: int
    submissions_open: bool
    questions: list[EpisodeQuestionResult]
