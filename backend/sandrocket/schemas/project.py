from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, Field, StringConstraints

from sandrocket.models import ProjectRole

ProjectName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]


class ProjectCreate(BaseModel):
    """Schema for creating a new project."""
    name: ProjectName
    description: str | None = Field(default=None, max_length=1000)


class ProjectUpdate(BaseModel):
    """Schema for updating a project."""
    name: ProjectName | None = None
    description: str | None = Field(default=None, max_length=1000)


class ProjectRead(BaseModel):
    """Schema for reading a project, with the caller's role when known."""
    id: int
    owner_user_id: int
    name: str
    description: str | None
    created_at: datetime
    updated_at: datetime
    role: ProjectRole | None = None

    model_config = {"from_attributes": True}


class ProjectListResponse(BaseModel):
    projects: list[ProjectRead]


class MemberRead(BaseModel):
    user_id: int
    email: str
    display_name: str
    role: ProjectRole
    joined_at: datetime


class MemberListResponse(BaseModel):
    members: list[MemberRead]
