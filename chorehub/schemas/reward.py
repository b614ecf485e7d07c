import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from chorehub.models.enums import RedemptionStatus


class RewardCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    point_cost: int = Field(ge=1, le=100000)
    image_url: str | None = None
    quantity_available: int | None = Field(default=None, ge=0)  # None = unlimited


class RewardUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    point_cost: int | None = Field(default=None, ge=1, le=100000)
    image_url: str | None = None
    quantity_available: int | None = Field(default=None, ge=0)
    is_active: bool | None = None


class RewardResponse(BaseModel):
    id: uuid.UUID
    family_id: uuid.UUID
    name: str
    description: str | None = None
    point_cost: int
    image_url: str | None = None
    quantity_available: int | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class RedemptionCreate(BaseModel):
    reward_id: uuid.UUID
    notes: str | None = Field(default=None, max_length=500)


class RedemptionReview(BaseModel):
    status: RedemptionStatus  # APPROVED or REJECTED
    notes: str | None = Field(default=None, max_length=500)


class RedemptionResponse(BaseModel):
    id: uuid.UUID
    child_id: uuid.UUID
    reward_id: uuid.UUID | None = None
    points_spent: int
    status: RedemptionStatus
    notes: str | None = None
    review_notes: str | None = None
    requested_at: datetime
    reviewed_at: datetime | None = None
    reviewed_by_id: uuid.UUID | None = None
    fulfilled_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class PendingCountResponse(BaseModel):
    count: int
