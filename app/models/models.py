from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, Text,
    UniqueConstraint, CheckConstraint, Enum as SAEnum, JSON
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
import enum


# --- Enums ---

class QuestionType(str, enum.Enum):
    SINGLE_CHOICE = "single_choice"
    FREE_TEXT = "free_text"


# --- Models ---

class User(Base):
    """Owning user of teams. Accounts are managed by the auth service."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False)
    display_name = Column(String(100), nullable=False)
    is_commissioner = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    teams = relationship("Team", back_populates="owner")


class Season(Base):
    __tablename__ = "seasons"

    id = Column(Integer, primary_key=True, index=True)
    season_number = Column(Integer, unique=True, nullable=False)
    name = Column(String(100), nullable=False)  # e.g. "Survivor 50"
    episode_count = Column(Integer, default=14, nullable=False)
    active_episode = Column(Integer, default=0, nullable=False)  # Latest aired episode; scoring never runs ahead of it
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    castaways = relationship("Castaway", back_populates="season", cascade="all, delete-orphan")
    episodes = relationship(
        "Episode", back_populates="season", cascade="all, delete-orphan",
        order_by="Episode.episode_number",
    )
    league_seasons = relationship("LeagueSeason", back_populates="season")


class Episode(Base):
    """Air schedule. Answers for an episode lock once it airs."""
    __tablename__ = "episodes"

    id = Column(Integer, primary_key=True, index=True)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False)
    episode_number = Column(Integer, nullable=False)
    title = Column(String(200))
    air_date = Column(DateTime(timezone=True))  # Null means no deadline yet

    season = relationship("Season", back_populates="episodes")

    __table_args__ = (
        UniqueConstraint("season_id", "episode_number", name="uq_episode_season_number"),
    )


class League(Base):
    __tablename__ = "leagues"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    league_seasons = relationship("LeagueSeason", back_populates="league", cascade="all, delete-orphan")


class LeagueSeason(Base):
    """One league's participation in one season. Scoping unit for all ledger data."""
    __tablename__ = "league_seasons"

    id = Column(Integer, primary_key=True, index=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    league = relationship("League", back_populates="league_seasons")
    season = relationship("Season", back_populates="league_seasons")
    teams = relationship("Team", back_populates="league_season", cascade="all, delete-orphan")
    questions = relationship("LeagueQuestion", back_populates="league_season", cascade="all, delete-orphan")
    retention_configs = relationship(
        "RetentionConfig", back_populates="league_season", cascade="all, delete-orphan",
        order_by="RetentionConfig.episode_number",
    )

    __table_args__ = (
        UniqueConstraint("league_id", "season_id", name="uq_league_season"),
    )


class Castaway(Base):
    __tablename__ = "castaways"

    id = Column(Integer, primary_key=True, index=True)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False)
    name = Column(String(100), nullable=False)

    season = relationship("Season", back_populates="castaways")
    roster_entries = relationship("RosterEntry", back_populates="castaway")

    __table_args__ = (
        UniqueConstraint("season_id", "name", name="uq_castaway_season_name"),
    )


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    league_season_id = Column(Integer, ForeignKey("league_seasons.id"), nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    name = Column(String(100), nullable=False)
    total_points = Column(Integer, default=0, nullable=False)  # Cache of the latest running total, written only by the ledger
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    league_season = relationship("LeagueSeason", back_populates="teams")
    owner = relationship("User", back_populates="teams")
    roster = relationship("RosterEntry", back_populates="team", cascade="all, delete-orphan")
    answers = relationship("PlayerAnswer", back_populates="team", cascade="all, delete-orphan")
    episode_points = relationship(
        "TeamEpisodePoints", back_populates="team", cascade="all, delete-orphan",
        order_by="TeamEpisodePoints.episode_number",
    )

    __table_args__ = (
        UniqueConstraint("league_season_id", "owner_id", name="uq_team_owner"),
    )


class RosterEntry(Base):
    """
    One roster window for a castaway on a team. Written by the draft workflow.
    end_episode is inclusive; NULL means the castaway is still on the team.
    """
    __tablename__ = "roster_entries"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    castaway_id = Column(Integer, ForeignKey("castaways.id"), nullable=False)
    start_episode = Column(Integer, nullable=False)
    end_episode = Column(Integer)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    team = relationship("Team", back_populates="roster")
    castaway = relationship("Castaway", back_populates="roster_entries")

    __table_args__ = (
        CheckConstraint("start_episode >= 1", name="ck_roster_start_positive"),
        CheckConstraint(
            "end_episode IS NULL OR start_episode <= end_episode", name="ck_roster_window_order"
        ),
    )


class LeagueQuestion(Base):
    """
    A prediction question for one episode. Created unscored; the commissioner
    sets correct_answer and flips is_scored. Re-scoring is allowed.
    """
    __tablename__ = "league_questions"

    id = Column(Integer, primary_key=True, index=True)
    league_season_id = Column(Integer, ForeignKey("league_seasons.id"), nullable=False)
    episode_number = Column(Integer, nullable=False)
    question_type = Column(SAEnum(QuestionType), default=QuestionType.SINGLE_CHOICE, nullable=False)
    text = Column(Text, nullable=False)
    options = Column(JSON(none_as_null=True))  # list[str], single choice only
    point_value = Column(Integer, default=1, nullable=False)
    is_wager = Column(Boolean, default=False, nullable=False)
    min_wager = Column(Integer)
    max_wager = Column(Integer)
    correct_answer = Column(Text)  # Null until scored
    is_scored = Column(Boolean, default=False, nullable=False)
    sort_order = Column(Integer, default=0)

    league_season = relationship("LeagueSeason", back_populates="questions")
    answers = relationship("PlayerAnswer", back_populates="question", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("point_value > 0", name="ck_question_point_value"),
        CheckConstraint(
            "(is_wager AND min_wager IS NOT NULL AND max_wager IS NOT NULL AND min_wager <= max_wager)"
            " OR (NOT is_wager AND min_wager IS NULL AND max_wager IS NULL)",
            name="ck_question_wager_bounds",
        ),
        # SAEnum stores member names
        CheckConstraint(
            "(question_type = 'SINGLE_CHOICE' AND options IS NOT NULL)"
            " OR (question_type != 'SINGLE_CHOICE' AND options IS NULL)",
            name="ck_question_options",
        ),
    )


class PlayerAnswer(Base):
    __tablename__ = "player_answers"

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(Integer, ForeignKey("league_questions.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    answer_text = Column(Text, nullable=False, default="")
    wager_amount = Column(Integer)  # Wager questions only
    points_earned = Column(Integer)  # Null until the question is scored
    wager_clamped = Column(Boolean, default=False, nullable=False)  # Wager fell outside bounds at scoring time
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    question = relationship("LeagueQuestion", back_populates="answers")
    team = relationship("Team", back_populates="answers")

    __table_args__ = (
        UniqueConstraint("question_id", "team_id", name="uq_answer_question_team"),
    )


class RetentionConfig(Base):
    """Points per actively rostered castaway for one episode. Absent row means 0."""
    __tablename__ = "retention_configs"

    id = Column(Integer, primary_key=True, index=True)
    league_season_id = Column(Integer, ForeignKey("league_seasons.id"), nullable=False)
    episode_number = Column(Integer, nullable=False)
    points_per_castaway = Column(Integer, default=0, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    league_season = relationship("LeagueSeason", back_populates="retention_configs")

    __table_args__ = (
        UniqueConstraint("league_season_id", "episode_number", name="uq_retention_episode"),
    )


class TeamEpisodePoints(Base):
    """
    The ledger. One row per team per episode, fully derived from rosters,
    scored answers and retention config. Never edited by hand; rebuilt by
    app.services.recalculation.
    """
    __tablename__ = "team_episode_points"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    episode_number = Column(Integer, nullable=False)
    question_points = Column(Integer, default=0, nullable=False)
    retention_points = Column(Integer, default=0, nullable=False)
    total_episode_points = Column(Integer, default=0, nullable=False)
    running_total = Column(Integer, default=0, nullable=False)

    team = relationship("Team", back_populates="episode_points")

    __table_args__ = (
        UniqueConstraint("team_id", "episode_number", name="uq_team_episode"),
    )
