"""Application configuration."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, read from the environment and `.env`."""

    # Server settings
    env: str = Field(default="development", description="development, test or production")
    debug: bool = Field(default=False, description="Debug mode")
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=9000, ge=1, le=65535, description="Server port")
    cors_allowlist: list[str] = Field(
        default=["http://localhost:5173", "http://127.0.0.1:5173"],
        description="Allowed CORS origins",
    )

    # Database settings
    database_url: str = Field(
        default="sqlite+aiosqlite:///./rocket.db",
        description="SQLAlchemy async database URL",
    )

    # Security settings
    jwt_secret: str = Field(default="dev-secret-change-me", min_length=16)
    jwt_issuer: str = Field(default="sandrocket")
    token_ttl_days: int = Field(default=20, gt=0)
    session_cookie_name: str = Field(default="sandrocket_session", min_length=1)
    session_cookie_secure: bool = Field(default=False)

    # Uploads
    upload_dir: Path = Field(default=Path("uploads/documents"))
    max_file_size_mb: float = Field(default=10, gt=0)
    max_project_storage_mb: float = Field(default=200, gt=0)

    # Projects
    invitation_ttl_days: int = Field(default=5, gt=0)

    # Tasks may be dragged from one epic's lane into another's
    allow_cross_epic_moves: bool = Field(default=True)

    # Prebuilt single-page client
    frontend_dist_dir: Optional[Path] = Field(default=None)

    # Logging
    log_json: bool = Field(default=False, description="Emit JSON log lines")

    model_config = SettingsConfigDict(
        env_prefix="SANDROCKET_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def max_file_size_bytes(self) -> int:
        return int(self.max_file_size_mb * 1024 * 1024)

    @property
    def max_project_storage_bytes(self) -> int:
        return int(self.max_project_storage_mb * 1024 * 1024)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
