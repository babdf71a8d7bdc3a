import os
from pathlib import Path

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_database_url() -> str:
    """Get database URL, using absolute path for SQLite to avoid path resolution issues.

    SQLite is only meant for local development and tests. Point DATABASE_URL
    at the managed backend for anything shared.
    """
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        logger.info(f"Using DATABASE_URL from environment: {db_url}")
        return db_url

    db_path = Path(__file__).parent.parent.parent / "content_engine.db"
    abs_path = db_path.resolve()
    db_url = f"sqlite:///{abs_path}"
    logger.warning(f"Using local SQLite database: {db_url}. Set DATABASE_URL to use the managed backend.")
    return db_url


class Settings(BaseSettings):
    database_url: str = Field(
        default_factory=get_database_url,
        validation_alias="DATABASE_URL",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    stale_after_days: int = Field(
        default=90,
        validation_alias="CONTENT_STALE_AFTER_DAYS",
        description="Records not modified for longer than this are reported as stale",
    )
    snapshot_preview_limit: int = Field(
        default=5,
        validation_alias="CONTENT_SNAPSHOT_PREVIEW_LIMIT",
        description="Recent items listed per collection in the context snapshot",
    )
    snapshot_scan_limit: int = Field(
        default=200,
        validation_alias="CONTENT_SNAPSHOT_SCAN_LIMIT",
        description="Most recent records inspected for published/stale/missing counts",
    )
    description_preview_chars: int = Field(
        default=100,
        validation_alias="CONTENT_DESCRIPTION_PREVIEW_CHARS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(sorted(valid_levels))}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("stale_after_days", "snapshot_preview_limit", "snapshot_scan_limit", "description_preview_chars")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError(f"must be a positive integer, got {value}")
        return value


settings = Settings()
