from datetime import datetime
from enum import Enum
from sqlalchemy import Index
from sqlmodel import SQLModel, Field

from sandrocket.time_utils import UTCDateTime, utc_now


class TaskStatus(str, Enum):
    """Board columns, left to right."""
    backlog = "backlog"
    in_progress = "in_progress"
    done = "done"


class Task(SQLModel, table=True):
    """
    Task model with a per-column position.

    Key fields:
    - status: the board column the task sits in
    - position: zero-based rank inside the (epic_id, status) partition;
      positions of a partition always form the range 0..n-1
    - last_edited_by_user_id: provenance of the latest mutation
    """

    __tablename__ = "tasks"
    __table_args__ = (Index("idx_tasks_epic_status_pos", "epic_id", "status", "position"),)

    id: int | None = Field(default=None, primary_key=True)
    epic_id: int = Field(foreign_key="epics.id", ondelete="CASCADE", index=True)
    creator_user_id: int | None = Field(default=None, foreign_key="users.id", ondelete="SET NULL")
    description: str
    status: TaskStatus = Field(default=TaskStatus.backlog)
    position: int = Field(default=0, ge=0)

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    last_edited_by_user_id: int | None = Field(default=None, foreign_key="users.id", ondelete="SET NULL")

    @property
    def partition(self) -> tuple[int, TaskStatus]:
        return (self.epic_id, TaskStatus(self.status))
