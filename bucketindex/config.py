"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Bucket index application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    debug: bool = False
    expose_docs: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///data/db/bucketindex.db"

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)

    # CORS
    cors_origins: list[str] = Field(default_factory=list)

    # Object store
    s3_bucket: str = ""
    s3_region: str = "us-east-1"
    s3_endpoint_url: str | None = None
    s3_access_key_id: str | None = None
    s3_secret_access_key: str | None = None
    s3_session_token: str | None = None
    s3_prefix: str = ""
    s3_page_size: int = Field(default=1000, ge=1, le=1000)

    # Indexing
    index_refresh_on_startup: bool = False

    def validate_runtime(self) -> None:
        """Validate settings required to run outside of debug mode."""
        if self.debug:
            return

        violations: list[str] = []
        if not self.s3_bucket:
            violations.append("S3_BUCKET must be configured")
        if bool(self.s3_access_key_id) != bool(self.s3_secret_access_key):
            violations.append(
                "S3_ACCESS_KEY_ID and S3_SECRET_ACCESS_KEY must be set together"
            )

        if violations:
            joined = "; ".join(violations)
            raise ValueError(f"Invalid configuration: {joined}")
