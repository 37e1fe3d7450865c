"""Application configuration.

Environment variables are loaded from .env file and can be overridden.
All settings have sensible defaults for local development.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ==========================================================================
    # Infrastructure
    # ==========================================================================

    # Environment mode - set to 'production' in production deployments
    environment: str = Field(
        default="development",
        alias="ENVIRONMENT",
        description="Deployment environment: 'development', 'staging', or 'production'.",
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    data_store_path: Path = Field(
        default=Path("data/db.json"),
        alias="DATA_STORE_PATH",
        description="JSON document holding every record collection.",
    )

    # ==========================================================================
    # Reporting
    # ==========================================================================

    trend_window_months: int = Field(
        default=12, alias="TREND_WINDOW_MONTHS", ge=1, le=60
    )
    dashboard_window_months: int = Field(
        default=6, alias="DASHBOARD_WINDOW_MONTHS", ge=1, le=60
    )
    leaderboard_size: int = Field(default=5, alias="LEADERBOARD_SIZE", ge=1, le=50)
    on_time_grace_minutes: int = Field(
        default=5, alias="ON_TIME_GRACE_MINUTES", ge=0, le=120
    )
    slow_report_log_ms: int = Field(default=1500, alias="SLOW_REPORT_LOG_MS", ge=0)

    # ==========================================================================
    # Fleet maintenance
    # ==========================================================================

    default_trip_distance_km: float = Field(
        default=50.0, alias="DEFAULT_TRIP_DISTANCE_KM", ge=0
    )
    recent_ticket_limit: int = Field(default=5, alias="RECENT_TICKET_LIMIT", ge=0)
    upcoming_ticket_limit: int = Field(default=3, alias="UPCOMING_TICKET_LIMIT", ge=0)

    # ==========================================================================
    # CORS
    # ==========================================================================

    cors_allow_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://localhost:3000",
            "http://127.0.0.1:5173",
            "http://127.0.0.1:3000",
        ],
        alias="CORS_ALLOW_ORIGINS",
    )
    cors_allow_origin_regex: str | None = Field(
        default=None, alias="CORS_ALLOW_ORIGIN_REGEX"
    )

    # ==========================================================================
    # Pydantic Settings Config
    # ==========================================================================

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ==========================================================================
    # Validators
    # ==========================================================================

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value: Any) -> list[str]:
        """Parse comma-separated CORS origins, rejecting wildcard '*'."""
        if isinstance(value, str):
            if not value:
                return []
            parsed = [item.strip() for item in value.split(",") if item.strip()]
        else:
            parsed = list(value) if value is not None else []

        if "*" in parsed:
            raise ValueError(
                "Wildcard CORS origin '*' is not allowed. "
                "Specify explicit origins like 'http://localhost:3000'."
            )
        return parsed

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: Any) -> str:
        """Accept any case for level names and reject unknown levels."""
        level = str(value or "INFO").strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: '{value}'")
        return level

    @model_validator(mode="after")
    def validate_production_store(self) -> "Settings":
        """Require an absolute data store path in production."""
        if self.environment.lower() == "production":
            if not self.data_store_path.is_absolute():
                raise ValueError(
                    "Relative DATA_STORE_PATH detected in production. "
                    "Set DATA_STORE_PATH to an absolute path."
                )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
