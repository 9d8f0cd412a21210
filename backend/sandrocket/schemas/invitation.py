from datetime import datetime

from pydantic import BaseModel, Field


class InvitationRead(BaseModel):
    """An invitation as shown to its creator."""
    id: int
    project_id: int
    token: str
    created_at: datetime
    expires_at: datetime | None

    model_config = {"from_attributes": True}


class InvitationAccept(BaseModel):
    token: str = Field(min_length=1)


class InvitationAcceptResponse(BaseModel):
    project_id: int
    already_member: bool
