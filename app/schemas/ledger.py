from pydantic import BaseModel


class TeamEpisodePointsResponse(BaseModel):
    episode_number: int
    question_points: int
    retention_points: int
    total_episode_points: int
    running_total: int

    model_config = {"from_attributes": True}


class TeamSeriesResponse(BaseModel):
    team_id: int
    episodes: list[TeamEpisodePointsResponse]


class TeamTotalResponse(BaseModel):
    team_id: int
    total_points: int


class StandingsEntry(BaseModel):
    rank: int
    previous_rank: int | None
    rank_change: int
    team_id: int
    team_name: str
    owner_id: int
    running_total: int
    points_delta: int
    total_points: int

    model_config = {"from_attributes": True}


class StandingsResponse(BaseModel):
    league_season_id: int
    current_episode: int
    entries: list[StandingsEntry]


class RecalculationResponse(BaseModel):
    teams_recalculated: int
    episodes_processed: int
    failed_team_ids: list[int] = []
    message: str

    @classmethod
    def from_result(cls, result) -> "RecalculationResponse":
        return cls(
            teams_recalculated=result.teams_recalculated,
            episodes_processed=result.episodes_processed,
            failed_team_ids=result.failed_team_ids,
            message=result.summary,
        )
