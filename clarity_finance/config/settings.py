"""
Configuration Management for Clarity Finance

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All process-level configuration is centralized here.
User preferences (display name, current month, ...) are NOT settings;
they live in the database and are served by the ConfigStore.
"""

import os
import sys
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_NAME = "ClarityFinance"
DB_FILENAME = "clarity.db"


def default_db_path() -> str:
    """
    Determine the database location for the current platform.

    Uses the local app data folder, never a cloud-synced directory.
    """
    home = Path.home()

    if sys.platform == "darwin":
        return str(home / "Library" / "Application Support" / APP_NAME / DB_FILENAME)

    if sys.platform == "win32":
        base = os.environ.get("APPDATA") or str(home)
        return str(Path(base) / APP_NAME / DB_FILENAME)

    return str(home / f".{APP_NAME.lower()}" / DB_FILENAME)


class DatabaseSettings(BaseSettings):
    """SQLite storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CLARITY_DB_",
        extra="ignore"
    )

    path: str = Field(
        default_factory=default_db_path,
        description="Path to the SQLite database file (':memory:' for tests)"
    )
    foreign_keys: bool = Field(
        default=True,
        description="Enforce foreign key constraints in the storage engine"
    )

    @field_validator('path')
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Reject an empty path early instead of failing at connect time."""
        if not v.strip():
            raise ValueError("Database path cannot be empty")
        return v.strip()


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode (logs every event bus emit)"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured log output"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Unsupported log level: {v}. Allowed: {sorted(allowed)}")
        return v.upper()


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def database(self) -> DatabaseSettings:
        return DatabaseSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()
