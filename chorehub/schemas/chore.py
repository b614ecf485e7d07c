import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from chorehub.models.enums import ChoreStatus


class ChoreCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    point_value: int = Field(default=0, ge=0, le=10000)
    assigned_to_id: uuid.UUID | None = None  # None = available to claim
    category_id: uuid.UUID | None = None
    due_date: datetime | None = None
    is_bonus: bool = False


class ChoreUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    point_value: int | None = Field(default=None, ge=0, le=10000)
    assigned_to_id: uuid.UUID | None = None
    category_id: uuid.UUID | None = None
    due_date: datetime | None = None
    is_bonus: bool | None = None


class ChoreComplete(BaseModel):
    photo_url: str | None = None
    notes: str | None = Field(default=None, max_length=1000)


class ChorePhoto(BaseModel):
    photo_url: str = Field(min_length=1)


class ChoreVerify(BaseModel):
    approved: bool
    feedback: str | None = Field(default=None, max_length=1000)
    points_penalty: int = Field(default=0, ge=0)


class BulkDeleteRequest(BaseModel):
    ids: list[uuid.UUID] = Field(min_length=1)


class BulkDeleteResponse(BaseModel):
    deleted_count: int


class ChoreResponse(BaseModel):
    id: uuid.UUID
    family_id: uuid.UUID
    assigned_to_id: uuid.UUID | None = None
    category_id: uuid.UUID | None = None
    name: str
    description: str | None = None
    point_value: int
    status: ChoreStatus
    is_bonus: bool
    due_date: datetime | None = None
    claimed_at: datetime | None = None
    completed_at: datetime | None = None
    photo_url: str | None = None
    completion_notes: str | None = None
    verified_at: datetime | None = None
    verified_by_id: uuid.UUID | None = None
    verification_notes: str | None = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)
