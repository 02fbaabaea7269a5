"""
Configuration settings for the leximemo review engine.

Uses Pydantic Settings for environment variable management with .env file support.
All variables are prefixed with ``LEXIMEMO_`` (e.g. ``LEXIMEMO_DB_PATH``).
"""
from __future__ import annotations

from datetime import tzinfo
from functools import lru_cache
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LEXIMEMO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    db_path: Path = Field(
        default=Path.home() / ".leximemo" / "items.db",
        description="SQLite database holding learning items",
    )

    # ========================================
    # Identity
    # ========================================
    default_user_id: str = Field(
        default="local",
        description="Owner id attached to new items when no cloud identity exists",
    )

    # ========================================
    # Review Behavior
    # ========================================
    daily_review_limit: int = Field(
        default=50,
        ge=0,
        description="Maximum items in one review queue (0 for unlimited)",
    )
    timezone: str | None = Field(
        default=None,
        description="IANA timezone for calendar-day statistics (unset = machine local time)",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str | None) -> str | None:
        if not value:
            return None
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    # ========================================
    # Helper Methods
    # ========================================
    def get_tzinfo(self) -> tzinfo | None:
        """Return the configured calendar timezone, or None for local time."""
        return ZoneInfo(self.timezone) if self.timezone else None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
