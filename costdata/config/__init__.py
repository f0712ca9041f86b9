"""Configuration package."""

from costdata.config.settings import (
    AppSettings,
    CacheSettings,
    DatabaseSettings,
    Settings,
    SourceSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "CacheSettings",
    "DatabaseSettings",
    "Settings",
    "SourceSettings",
    "get_settings",
    "validate_all_settings",
]
