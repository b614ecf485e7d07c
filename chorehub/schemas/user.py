import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from chorehub.models.enums import UserRole


class UserBase(BaseModel):
    name: str
    role: UserRole


class ChildCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    pin: str = Field(pattern=r"^\d{4,6}$")  # 4-6 digit PIN for the child app
    avatar_url: str | None = None


class ChildUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    avatar_url: str | None = None


class ChildPinReset(BaseModel):
    pin: str = Field(pattern=r"^\d{4,6}$")


class UserResponse(UserBase):
    id: uuid.UUID
    family_id: uuid.UUID
    email: str | None = None
    avatar_url: str | None = None
    points_balance: int
    is_active: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
