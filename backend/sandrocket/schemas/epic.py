from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, Field, StringConstraints

EpicName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]


class EpicCreate(BaseModel):
    """Schema for creating a new epic."""
    name: EpicName
    description: str | None = Field(default=None, max_length=1000)


class EpicUpdate(BaseModel):
    """Schema for updating an epic."""
    name: EpicName | None = None
    description: str | None = Field(default=None, max_length=1000)


class EpicRead(BaseModel):
    id: int
    project_id: int
    name: str
    description: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class EpicListResponse(BaseModel):
    epics: list[EpicRead]
