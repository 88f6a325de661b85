"""
Episode Points Ledger — per team, per episode points and the running total.

For every episode E of a team:

    question_points  = sum of points earned on scored questions of episode E
    retention_points = active castaways in E * points_per_castaway(E)
    total            = question_points + retention_points
    running_total    = running_total(E - 1) + total,  running_total(0) = 0

The fold is done in memory (build_team_series) and written in one go
(persist_team_series) so a team's series is never half updated. Rows are
upserted as a plain overwrite, never incremented, so rebuilding with the same
inputs gives the same rows.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.models import (
    LeagueQuestion, PlayerAnswer, RosterEntry, Team, TeamEpisodePoints,
)
from app.services.answer_scorer import AnswerScore, score_answer
from app.services.errors import EpisodeOutOfRangeError
from app.services.retention import get_league_season_or_raise, get_retention_map
from app.services.roster_resolver import active_castaway_count

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EpisodePoints:
    episode_number: int
    question_points: int
    retention_points: int
    total_episode_points: int
    running_total: int


@dataclass
class TeamFacts:
    """Everything the ledger reads for one team."""
    team_id: int
    league_season_id: int
    roster: list = field(default_factory=list)
    answers: list[tuple[PlayerAnswer, LeagueQuestion]] = field(default_factory=list)
    retention: dict[int, int] = field(default_factory=dict)


def check_episode_range(episode: int, active_episode: int) -> None:
    """Scoring never runs ahead of the aired season, and never clamps."""
    if episode < 1 or episode > active_episode:
        raise EpisodeOutOfRangeError(episode, active_episode)


def compute_episode_points(
    episode: int,
    answers: list[tuple[PlayerAnswer, LeagueQuestion]],
    roster,
    points_per_castaway: int,
    previous_running_total: int,
    team_id: int | None = None,
) -> tuple[EpisodePoints, list[tuple[PlayerAnswer, AnswerScore]]]:
    """
    Points for a single episode. Answers to other episodes and to unscored
    questions are ignored. Returns the episode record plus the per-answer
    scores so the caller can persist points_earned.
    """
    scores = []
    question_points = 0
    for answer, question in answers:
        if question.episode_number != episode or not question.is_scored:
            continue
        score = score_answer(question, answer)
        scores.append((answer, score))
        question_points += score.points

    retention_points = active_castaway_count(roster, episode, team_id=team_id) * points_per_castaway
    total = question_points + retention_points

    points = EpisodePoints(
        episode_number=episode,
        question_points=question_points,
        retention_points=retention_points,
        total_episode_points=total,
        running_total=previous_running_total + total,
    )
    return points, scores


def build_team_series(
    facts: TeamFacts, max_episode: int
) -> tuple[list[EpisodePoints], list[tuple[PlayerAnswer, AnswerScore]]]:
    """Fold episodes 1..max_episode in ascending order."""
    by_episode = defaultdict(list)
    for answer, question in facts.answers:
        by_episode[question.episode_number].append((answer, question))

    series = []
    all_scores = []
    running_total = 0
    for episode in range(1, max_episode + 1):
        if episode not in facts.retention:
            logger.info(
                "No retention config for league season %s episode %s; using 0",
                facts.league_season_id, episode,
            )
        points, scores = compute_episode_points(
            episode,
            by_episode.get(episode, []),
            facts.roster,
            facts.retention.get(episode, 0),
            running_total,
            team_id=facts.team_id,
        )
        running_total = points.running_total
        series.append(points)
        all_scores.extend(scores)

    return series, all_scores


async def load_team_facts(db: AsyncSession, team: Team, episode: int | None = None) -> TeamFacts:
    roster_result = await db.execute(
        select(RosterEntry)
        .where(RosterEntry.team_id == team.id)
        .order_by(RosterEntry.start_episode, RosterEntry.id)
    )

    stmt = (
        select(PlayerAnswer, LeagueQuestion)
        .join(LeagueQuestion, PlayerAnswer.question_id == LeagueQuestion.id)
        .where(PlayerAnswer.team_id == team.id, LeagueQuestion.is_scored == True)
        .order_by(LeagueQuestion.episode_number, LeagueQuestion.sort_order, LeagueQuestion.id)
    )
    if episode is not None:
        stmt = stmt.where(LeagueQuestion.episode_number == episode)
    answers_result = await db.execute(stmt)

    return TeamFacts(
        team_id=team.id,
        league_season_id=team.league_season_id,
        roster=list(roster_result.scalars().all()),
        answers=[(answer, question) for answer, question in answers_result.all()],
        retention=await get_retention_map(db, team.league_season_id),
    )


def apply_answer_scores(scores: list[tuple[PlayerAnswer, AnswerScore]]) -> None:
    for answer, score in scores:
        if answer.points_earned != score.points:
            answer.points_earned = score.points
        if answer.wager_clamped != score.wager_clamped:
            answer.wager_clamped = score.wager_clamped


def _write_row(row: TeamEpisodePoints, points: EpisodePoints) -> None:
    row.question_points = points.question_points
    row.retention_points = points.retention_points
    row.total_episode_points = points.total_episode_points
    row.running_total = points.running_total


async def upsert_episode_points(db: AsyncSession, team_id: int, points: EpisodePoints) -> TeamEpisodePoints:
    result = await db.execute(
        select(TeamEpisodePoints).where(
            TeamEpisodePoints.team_id == team_id,
            TeamEpisodePoints.episode_number == points.episode_number,
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = TeamEpisodePoints(team_id=team_id, episode_number=points.episode_number)
        db.add(row)
    _write_row(row, points)
    return row


async def persist_team_series(
    db: AsyncSession,
    team: Team,
    series: list[EpisodePoints],
    scores: list[tuple[PlayerAnswer, AnswerScore]],
) -> None:
    """
    Replace the team's ledger with the given series and sync total_points.
    Must run inside the caller's transaction; rows past the last episode of
    the series are removed so the stored series is exactly 1..N.
    """
    result = await db.execute(
        select(TeamEpisodePoints).where(TeamEpisodePoints.team_id == team.id)
    )
    existing = {row.episode_number: row for row in result.scalars().all()}

    for points in series:
        row = existing.pop(points.episode_number, None)
        if row is None:
            row = TeamEpisodePoints(team_id=team.id, episode_number=points.episode_number)
            db.add(row)
        _write_row(row, points)

    for stale in existing.values():
        await db.delete(stale)

    apply_answer_scores(scores)
    team.total_points = series[-1].running_total if series else 0
    await db.flush()


async def compute_episode(
    db: AsyncSession, team: Team, episode: int, previous_running_total: int
) -> TeamEpisodePoints:
    """
    Compute and upsert a single episode row for a team.

    Only the given episode is written; later episodes are not re-folded, so a
    full rebuild (app.services.recalculation) is the way to apply retroactive
    changes. When the episode is the active one, total_points follows it.
    """
    _, season = await get_league_season_or_raise(db, team.league_season_id)
    check_episode_range(episode, season.active_episode)

    facts = await load_team_facts(db, team, episode=episode)
    if episode not in facts.retention:
        logger.info(
            "No retention config for league season %s episode %s; using 0",
            team.league_season_id, episode,
        )
    points, scores = compute_episode_points(
        episode,
        facts.answers,
        facts.roster,
        facts.retention.get(episode, 0),
        previous_running_total,
        team_id=team.id,
    )
    apply_answer_scores(scores)
    row = await upsert_episode_points(db, team.id, points)
    if episode == season.active_episode:
        team.total_points = points.running_total
    await db.flush()
    return row
