"""Configuration package."""

from expense_tracker.config.settings import (
    AppSettings,
    DatabaseSettings,
    PushSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "PushSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
