"""Configuration package."""

from clarity_finance.config.settings import (
    AppSettings,
    DatabaseSettings,
    Settings,
    default_db_path,
    get_settings,
)

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "Settings",
    "default_db_path",
    "get_settings",
]
