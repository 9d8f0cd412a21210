from datetime import datetime
from sqlmodel import SQLModel, Field

from sandrocket.time_utils import UTCDateTime, utc_now


class User(SQLModel, table=True):
    """Registered account. `email` is stored lower-cased."""

    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True)
    password_hash: str
    display_name: str = Field(unique=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
