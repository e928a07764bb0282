"""Configuration package."""

from budget_tracker.config.settings import (
    AppSettings,
    RemoteSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "RemoteSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
