from pydantic import BaseModel, Field

from app.schemas.ledger import RecalculationResponse


class RetentionEpisodeInput(BaseModel):
    episode_number: int = Field(..., gt=0)
    points_per_castaway: int


class RetentionConfigUpdate(BaseModel):
    episodes: list[RetentionEpisodeInput]


class RetentionApplyAll(BaseModel):
    points_per_castaway: int


class RetentionConfigResponse(BaseModel):
    episode_number: int
    points_per_castaway: int

    model_config = {"from_attributes": True}


class RetentionUpdateResponse(BaseModel):
    configs: list[RetentionConfigResponse]
    recalculation: RecalculationResponse
