"""
Configuration settings for the practice-test engine.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PRACTICE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///data/practice.db",
        description="SQLAlchemy URL of the profile store (ledger, history, preferences)",
    )

    # ========================================
    # Question Bank
    # ========================================
    question_bank_path: str = Field(
        default="data/lessons.json",
        description="JSON file with courses, lessons and questions",
    )
    catalog_api_url: str | None = Field(
        default=None,
        description="Base URL of the remote lesson catalog (overrides the JSON file)",
    )
    catalog_api_key: str | None = Field(
        default=None,
        description="API key sent to the remote lesson catalog",
    )
    catalog_timeout_seconds: float = Field(
        default=10.0,
        description="HTTP timeout for catalog requests",
    )

    # ========================================
    # Profiles
    # ========================================
    default_profile: str = Field(
        default="guest",
        description="Profile used when none is given",
    )

    # ========================================
    # Practice Tests
    # ========================================
    question_time_seconds: int = Field(
        default=50,
        ge=1,
        description="Per-question countdown when the time limit is enabled",
    )
    time_warning_ratio: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Share of the countdown flagged as near-expiry",
    )
    time_up_grace_seconds: float = Field(
        default=1.5,
        ge=0.0,
        description="Delay between a time-up and the forced advance",
    )
    max_question_count: int = Field(
        default=50,
        ge=1,
        description="Upper bound for questions per test",
    )
    history_limit: int = Field(
        default=10,
        ge=1,
        description="Default number of past results shown",
    )
    random_seed: int | None = Field(
        default=None,
        description="Seed for question sampling (None for a fresh shuffle every test)",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default="logs/practice.log",
        description="Log file path (None for stderr only)",
    )

    def has_catalog_configured(self) -> bool:
        """Check if the remote lesson catalog is configured."""
        return bool(self.catalog_api_url)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
