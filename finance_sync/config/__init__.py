"""Configuration package."""

from finance_sync.config.settings import (
    AppSettings,
    GeminiSettings,
    MindeeSettings,
    Settings,
    SupabaseSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "MindeeSettings",
    "Settings",
    "SupabaseSettings",
    "get_settings",
    "validate_all_settings",
]
