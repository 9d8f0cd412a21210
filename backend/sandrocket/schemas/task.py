from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, Field, StringConstraints

from sandrocket.models import TaskStatus

Description = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=150)]


class TaskCreate(BaseModel):
    """Schema for creating a new task; it always lands at the end of the backlog."""
    description: Description


class TaskUpdate(BaseModel):
    """
    Schema for updating a task.

    `status` and `position` are applied through the move orchestrator, so
    positions stay contiguous. Omitting `position` while changing `status`
    appends the task to the target column.
    """
    description: Description | None = None
    status: TaskStatus | None = None
    position: int | None = Field(default=None, ge=0)


class TaskReorder(BaseModel):
    """Schema for dragging a task to an exact slot, possibly in another epic."""
    epic_id: int
    status: TaskStatus
    position: int = Field(ge=0)


class TaskRead(BaseModel):
    """Schema for reading a task."""
    id: int
    epic_id: int
    creator_user_id: int | None
    description: str
    status: TaskStatus
    position: int
    created_at: datetime
    updated_at: datetime
    last_edited_by_user_id: int | None

    model_config = {"from_attributes": True}


class TaskListResponse(BaseModel):
    tasks: list[TaskRead]
