from datetime import datetime

from pydantic import BaseModel

from sandrocket.models import DocumentAction


class DocumentRead(BaseModel):
    """Schema for reading a stored document."""
    id: int
    project_id: int
    uploader_user_id: int
    uploader_display_name: str | None = None
    original_filename: str
    mime_type: str
    size_bytes: int
    created_at: datetime


class DocumentActivityRead(BaseModel):
    id: int
    document_id: int | None
    user_id: int
    user_display_name: str | None = None
    action: DocumentAction
    filename: str
    created_at: datetime


class DocumentListResponse(BaseModel):
    documents: list[DocumentRead]
    activity: list[DocumentActivityRead]
    total_size_bytes: int
    max_size_bytes: int
