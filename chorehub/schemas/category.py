import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

_HEX_COLOR = r"^#[0-9a-fA-F]{6}$"


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    color: str = Field(default="#6366f1", pattern=_HEX_COLOR)
    icon: str = Field(default="clipboard", max_length=50)


class CategoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=50)
    color: str | None = Field(default=None, pattern=_HEX_COLOR)
    icon: str | None = Field(default=None, max_length=50)


class CategoryResponse(BaseModel):
    id: uuid.UUID
    family_id: uuid.UUID
    name: str
    color: str
    icon: str
    chore_count: int = 0
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
