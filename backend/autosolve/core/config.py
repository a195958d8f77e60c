"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables and .env file.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    PROJECT_NAME: str = "AutoSolve"
    ENVIRONMENT: str = "development"

    # Local persistence - one JSON blob per store namespace
    DATA_DIR: Path = Path.home() / ".autosolve"

    # Week boundaries are computed in this zone (system local time when unset)
    TIMEZONE: Optional[str] = None

    # Scan quotas
    FREE_WEEKLY_SCANS: int = 2
    PREMIUM_WEEKLY_SCANS: int = 20
    TRIAL_SCAN_LIMIT: int = 10  # absolute for the whole trial window
    TRIAL_DURATION_DAYS: int = 2

    # Diagnostic history
    HISTORY_MAX_SESSIONS: int = 50

    # Repair outcome follow-ups and community stats
    FOLLOW_UP_DAYS: int = 3
    FOLLOW_UP_MARK_ON_SURFACE: bool = False
    RECENT_REPORT_WINDOW_DAYS: int = 30
    TOP_SOLUTIONS_LIMIT: int = 5
    STATS_KEY_STRATEGY: Literal["legacy", "sha256"] = "legacy"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"

    @field_validator("TIMEZONE", mode="before")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        """Reject unknown IANA zone names early; empty means system local."""
        if v in (None, ""):
            return None
        try:
            ZoneInfo(v)
        except ZoneInfoNotFoundError as exc:
            raise ValueError(f"Unknown timezone: {v}") from exc
        return v

    @property
    def tzinfo(self) -> ZoneInfo | None:
        """Zone used for week boundaries, or None for system local time."""
        return ZoneInfo(self.TIMEZONE) if self.TIMEZONE else None

    @property
    def weekly_limits(self) -> dict[str, int]:
        """Scan ceiling per subscription tier."""
        return {
            "free": self.FREE_WEEKLY_SCANS,
            "premium": self.PREMIUM_WEEKLY_SCANS,
            "trial": self.TRIAL_SCAN_LIMIT,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
