"""Configuration models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class EnvSettings(BaseSettings):
    """Settings loaded from the environment or .env file (override config.yaml)."""

    threadkeep_db_path: Optional[str] = Field(
        None, description="Database file path override"
    )
    threadkeep_log_level: Optional[str] = Field(None, description="Logging level override")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class AppConfig(BaseModel):
    """Application configuration from config.yaml."""

    # Storage
    database_path: Optional[str] = Field(
        None, description="SQLite database path (default: <config_dir>/bookmarks.db)"
    )

    # Ingestion
    batch_size: int = Field(
        default=1000, ge=1, le=100000, description="Bookmarks per insert transaction"
    )

    # Queries
    default_page_size: int = Field(default=50, ge=1, le=1000)
    search_limit: int = Field(default=20, ge=1, le=1000)
    top_tags: int = Field(default=10, ge=1, le=1000, description="Tags shown by stats")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "database_path": "/home/user/.threadkeep/bookmarks.db",
            "batch_size": 1000,
            "default_page_size": 50,
            "search_limit": 20,
            "top_tags": 10,
            "log_level": "INFO",
        }
    })

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Accept standard logging level names in any case."""
        level = v.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return level
