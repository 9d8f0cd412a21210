from datetime import datetime
from enum import Enum
from sqlmodel import SQLModel, Field

from sandrocket.time_utils import UTCDateTime, utc_now


class DocumentAction(str, Enum):
    uploaded = "uploaded"
    downloaded = "downloaded"
    deleted = "deleted"
    viewed = "viewed"


class Document(SQLModel, table=True):
    """
    File attached to a project.

    The bytes live on disk at `{upload_dir}/{project_id}/{stored_filename}`;
    `original_filename` is only used for display and download headers.
    """

    __tablename__ = "documents"

    id: int | None = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="projects.id", ondelete="CASCADE", index=True)
    uploader_user_id: int = Field(foreign_key="users.id", ondelete="CASCADE")
    original_filename: str
    stored_filename: str
    mime_type: str
    size_bytes: int = Field(ge=0)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)


class DocumentActivity(SQLModel, table=True):
    """Audit trail of document actions; survives the document's deletion."""

    __tablename__ = "document_activity"

    id: int | None = Field(default=None, primary_key=True)
    document_id: int | None = Field(default=None, foreign_key="documents.id", ondelete="SET NULL")
    project_id: int = Field(foreign_key="projects.id", ondelete="CASCADE", index=True)
    user_id: int = Field(foreign_key="users.id", ondelete="CASCADE")
    action: DocumentAction
    filename: str
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
