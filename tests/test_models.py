import pytest
from sqlalchemy.exc import IntegrityError

from app.models.models import Castaway, QuestionType


@pytest.mark.parametrize("bounds", [
    {"min_wager": None, "max_wager": None},
    {"min_wager": 1, "max_wager": None},
    {"min_wager": 10, "max_wager": 5},
])
async def test_wager_questions_need_ordered_bounds(builder, league, bounds) -> None:
    with pytest.raises(IntegrityError):
        await builder.add_question(league.league_season_id, 1, is_wager=True, **bounds)


async def test_plain_questions_take_no_wager_bounds(builder, league) -> None:
    with pytest.raises(IntegrityError):
        await builder.add_question(league.league_season_id, 1, min_wager=1, max_wager=5)


async def test_single_choice_needs_options(builder, league) -> None:
    with pytest.raises(IntegrityError):
        await builder.add_question(league.league_season_id, 1, question_type=QuestionType.SINGLE_CHOICE)


async def test_free_text_takes_no_options(builder, league) -> None:
    with pytest.raises(IntegrityError):
        await builder.add_question(league.league_season_id, 1, options=["a", "b"])


async def test_valid_question_shapes(builder, league) -> None:
    await builder.add_question(league.league_season_id, 1)
    await builder.add_question(league.league_season_id, 1, is_wager=True, min_wager=1, max_wager=1)
    await builder.add_question(
        league.league_season_id, 1, question_type=QuestionType.SINGLE_CHOICE, options=["a", "b"],
    )


def test_castaways_carry_no_activity_flag() -> None:
    # Whether a castaway counts is decided by roster windows alone
    assert set(Castaway.__table__.columns.keys()) == {"id", "season_id", "name"}
