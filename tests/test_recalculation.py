import pytest
from sqlalchemy.exc import OperationalError

from app.services import recalculation
from app.services.errors import EpisodeOutOfRangeError, NotFoundError
from app.services.recalculation import (
    recalculate_season, recalculate_team_history, recalculate_teams,
)


async def _three_castaway_team(builder, league, team_index: int = 0) -> int:
    team_id = league.team_ids[team_index]
    for castaway_id in league.castaway_ids[team_index * 3:team_index * 3 + 3]:
        await builder.add_roster(team_id, castaway_id, 1)
    return team_id


def _assert_consistent(series: list[tuple], total: int) -> None:
    previous = 0
    for expected_episode, (episode, question, retention, episode_total, running) in enumerate(series, 1):
        assert episode == expected_episode
        assert episode_total == question + retention
        assert running == previous + episode_total
        previous = running
    assert total == previous


async def test_recalculate_season_builds_every_team(builder, league, session_factory) -> None:
    first = await _three_castaway_team(builder, league, 0)
    second = league.team_ids[1]
    await builder.add_roster(second, league.castaway_ids[5], 2, 2)
    await builder.set_retention(league.league_season_id, {1: 1, 2: 2, 3: 3})
    question_id = await builder.add_question(league.league_season_id, 2, point_value=4, correct_answer="Ozzy")
    await builder.add_answer(question_id, first, "ozzy")
    await builder.add_answer(question_id, second, "Cirie")

    result = await recalculate_season(session_factory, league.league_season_id)

    assert result.succeeded
    assert (result.teams_recalculated, result.episodes_processed) == (2, 3)
    assert result.summary == "Points recalculated for 2 teams across 3 episodes"
    assert await builder.series(first) == [(1, 0, 3, 3, 3), (2, 4, 6, 10, 13), (3, 0, 9, 9, 22)]
    assert await builder.series(second) == [(1, 0, 0, 0, 0), (2, 0, 2, 2, 2), (3, 0, 0, 0, 2)]
    for team_id in league.team_ids:
        _assert_consistent(await builder.series(team_id), await builder.total(team_id))


async def test_recalculation_is_idempotent(builder, league, session_factory) -> None:
    team_id = await _three_castaway_team(builder, league)
    await builder.set_retention(league.league_season_id, {1: 2, 3: 1})
    question_id = await builder.add_question(
        league.league_season_id, 1, is_wager=True, min_wager=1, max_wager=10, correct_answer="yes",
    )
    await builder.add_answer(question_id, team_id, "no", wager=6)

    await recalculate_season(session_factory, league.league_season_id)
    first_rows = {t: await builder.rows(t) for t in league.team_ids}
    first_totals = {t: await builder.total(t) for t in league.team_ids}

    await recalculate_season(session_factory, league.league_season_id)

    assert {t: await builder.rows(t) for t in league.team_ids} == first_rows
    assert {t: await builder.total(t) for t in league.team_ids} == first_totals
    assert first_totals[team_id] == 6 - 6 + 0 + 3


async def test_retroactive_retention_change_shifts_later_running_totals(builder, league, session_factory) -> None:
    team_id = await _three_castaway_team(builder, league)
    await builder.set_retention(league.league_season_id, {1: 2, 2: 2, 3: 2})
    await recalculate_season(session_factory, league.league_season_id)
    before = await builder.series(team_id)

    await builder.set_retention(league.league_season_id, {2: 5})
    await recalculate_season(session_factory, league.league_season_id)
    after = await builder.series(team_id)

    assert [row[2] for row in after] == [6, 15, 6]
    assert after[0][4] == before[0][4]
    assert [a[4] - b[4] for a, b in zip(after[1:], before[1:])] == [9, 9]
    assert await builder.total(team_id) == after[-1][4] == 27


async def test_unaired_episodes_are_never_scored(builder, league, session_factory) -> None:
    team_id = await _three_castaway_team(builder, league)
    await builder.set_retention(league.league_season_id, {ep: 1 for ep in range(1, 6)})
    question_id = await builder.add_question(league.league_season_id, 5, point_value=9, correct_answer="x")
    await builder.add_answer(question_id, team_id, "x")

    await recalculate_season(session_factory, league.league_season_id)

    assert [row[0] for row in await builder.series(team_id)] == [1, 2, 3]
    assert await builder.total(team_id) == 9

    with pytest.raises(EpisodeOutOfRangeError):
        await recalculate_team_history(session_factory, team_id, max_episode=4)


async def test_lowering_the_active_episode_drops_later_rows(builder, league, session_factory) -> None:
    team_id = await _three_castaway_team(builder, league)
    await builder.set_retention(league.league_season_id, {1: 1, 2: 1, 3: 1})
    await recalculate_season(session_factory, league.league_season_id)

    await builder.set_active_episode(league.season_id, 2)
    await recalculate_season(session_factory, league.league_season_id)

    assert await builder.series(team_id) == [(1, 0, 3, 3, 3), (2, 0, 3, 3, 6)]
    assert await builder.total(team_id) == 6


async def test_store_failure_is_isolated_to_one_team(builder, league, session_factory, monkeypatch) -> None:
    first = await _three_castaway_team(builder, league, 0)
    second = await _three_castaway_team(builder, league, 1)
    await builder.set_retention(league.league_season_id, {1: 1, 2: 1, 3: 1})
    await recalculate_season(session_factory, league.league_season_id)
    second_before = await builder.rows(second)

    await builder.set_retention(league.league_season_id, {1: 10})
    real_persist = recalculation.persist_team_series

    async def flaky_persist(db, team, series, scores):
        await real_persist(db, team, series, scores)
        if team.id == second:
            raise OperationalError("UPDATE team_episode_points", {}, Exception("connection lost"))

    monkeypatch.setattr(recalculation, "persist_team_series", flaky_persist)
    result = await recalculate_season(session_factory, league.league_season_id)

    assert not result.succeeded
    assert result.teams_recalculated == 1
    assert result.failed_team_ids == [second]
    assert "connection lost" in result.errors[second]
    assert "1 team(s) failed" in result.summary
    # The failed team keeps its previous, consistent series
    assert await builder.rows(second) == second_before
    assert await builder.total(second) == 9
    assert (await builder.series(first))[0] == (1, 0, 30, 30, 30)
    _assert_consistent(await builder.series(first), await builder.total(first))


async def test_missing_team_is_reported_not_raised(builder, league, session_factory) -> None:
    result = await recalculate_teams(session_factory, [league.team_ids[0], 9999], 3)

    assert result.teams_recalculated == 1
    assert result.failed_team_ids == [9999]


async def test_unknown_league_season(session_factory) -> None:
    with pytest.raises(NotFoundError):
        await recalculate_season(session_factory, 12345)


async def test_concurrent_workers_produce_the_same_ledger(builder, session_factory) -> None:
    league = await builder.create_league_season(team_count=4, castaway_count=12)
    for i in range(4):
        await _three_castaway_team(builder, league, i)
    await builder.set_retention(league.league_season_id, {1: 1, 2: 2, 3: 3})

    sequential = await recalculate_season(session_factory, league.league_season_id, max_workers=1)
    rows = {t: await builder.rows(t) for t in league.team_ids}
    concurrent = await recalculate_season(session_factory, league.league_season_id, max_workers=4)

    assert sequential.teams_recalculated == concurrent.teams_recalculated == 4
    assert {t: await builder.rows(t) for t in league.team_ids} == rows


async def test_episode_range_failure_is_reported_per_team(builder, league, session_factory) -> None:
    # active_episode dropped to 2 after the caller read it as 3
    await builder.set_active_episode(league.season_id, 2)

    result = await recalculate_teams(session_factory, league.team_ids, max_episode=3)

    assert result.teams_recalculated == 0
    assert result.failed_team_ids == sorted(league.team_ids)
    assert all("outside the scorable range" in msg for msg in result.errors.values())
    for team_id in league.team_ids:
        assert await builder.series(team_id) == []
