from datetime import datetime
from sqlmodel import SQLModel, Field

from sandrocket.time_utils import UTCDateTime, utc_now


class Epic(SQLModel, table=True):
    """Epic model - a lane of tasks inside a project."""

    __tablename__ = "epics"

    id: int | None = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="projects.id", ondelete="CASCADE", index=True)
    name: str
    description: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
