from datetime import datetime
from enum import Enum
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field

from sandrocket.time_utils import UTCDateTime, utc_now


class ProjectRole(str, Enum):
    owner = "owner"
    contributor = "contributor"


class Project(SQLModel, table=True):
    """Project model - top-level container for epics and documents."""

    __tablename__ = "projects"

    id: int | None = Field(default=None, primary_key=True)
    owner_user_id: int = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    name: str = Field(index=True)
    description: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)


class ProjectMember(SQLModel, table=True):
    """Membership of a user in a project, with a role."""

    __tablename__ = "project_members"
    __table_args__ = (UniqueConstraint("project_id", "user_id"),)

    id: int | None = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="projects.id", ondelete="CASCADE", index=True)
    user_id: int = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    role: ProjectRole
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)


class ProjectInvitation(SQLModel, table=True):
    """
    Single-use invitation token.

    A token is usable while `used_by_user_id` is empty and `expires_at`
    (when set) lies in the future.
    """

    __tablename__ = "project_invitations"

    id: int | None = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="projects.id", ondelete="CASCADE", index=True)
    token: str = Field(unique=True, index=True)
    created_by_user_id: int = Field(foreign_key="users.id", ondelete="CASCADE")
    used_by_user_id: int | None = Field(default=None, foreign_key="users.id", ondelete="SET NULL")
    used_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    expires_at: datetime | None = Field(default=None, sa_type=UTCDateTime)

    def is_usable(self, now: datetime) -> bool:
        if self.used_by_user_id is not None:
            return False
        return self.expires_at is None or self.expires_at > now
