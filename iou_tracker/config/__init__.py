"""Configuration package."""

from iou_tracker.config.settings import (
    AdSettings,
    AppSettings,
    ReminderDefaults,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AdSettings",
    "AppSettings",
    "ReminderDefaults",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
