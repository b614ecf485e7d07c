import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class FamilyUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)


class FamilyResponse(BaseModel):
    id: uuid.UUID
    name: str
    invite_code: str
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ChoreCounts(BaseModel):
    pending: int
    awaiting_verification: int
    completed: int
    rejected: int


class FamilyStats(BaseModel):
    parents: int
    children: int
    chores: ChoreCounts
    pending_redemptions: int


class ActivityResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    action: str
    target_type: str
    target_id: uuid.UUID | None = None
    details: dict | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
