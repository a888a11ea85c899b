"""
Configuration Management for IOU Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Defaults that used to be hardcoded in the app (reminder cadence, ad
frequency caps, which features are switched on) are read once at startup,
so changing an entitlement never needs a code change.
"""

from datetime import time
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Local key-value storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="IOU_STORAGE_",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path("instance"),
        description="Directory holding one JSON file per storage key"
    )

    # Storage keys (kept compatible with data written by the mobile app)
    records_key: str = Field(
        default="iou_tracker_ious",
        description="Key of the debt record list"
    )
    settings_key: str = Field(
        default="iou_tracker_settings",
        description="Key of the user settings object"
    )
    categories_key: str = Field(
        default="@iou_categories",
        description="Key of the category list"
    )
    purchase_key: str = Field(
        default="iou_tracker_ad_free_purchased",
        description="Key of the ad-free purchase state"
    )
    ad_frequency_key: str = Field(
        default="adFrequencyData",
        description="Key of the interstitial ad counters"
    )
    audit_key: str = Field(
        default="iou_tracker_audit_log",
        description="Key of the persisted audit trail"
    )
    audit_log_max_events: int = Field(
        default=500,
        ge=10,
        le=10000,
        description="Oldest audit events are dropped beyond this count"
    )


class ReminderDefaults(BaseSettings):
    """Default reminder policy for users who never touched their settings."""

    model_config = SettingsConfigDict(
        env_prefix="IOU_REMINDERS_",
        extra="ignore"
    )

    enabled: bool = Field(
        default=True,
        description="Reminders switched on for new installs"
    )
    days_before_due_date: int = Field(
        default=3,
        ge=0,
        le=365,
        description="Lead time for due-date reminders"
    )
    periodic_interval_days: int = Field(
        default=7,
        ge=1,
        le=365,
        description="Cadence for records without a due date"
    )
    notification_time: time = Field(
        default=time(9, 0),
        description="Wall-clock time reminders are anchored to"
    )
    message_template: str = Field(
        default="Hi {name}, just a friendly reminder about our {type} of {amount}. Thanks!",
        description="Reminder message with {name}, {type} and {amount} placeholders"
    )
    overdue_grace_minutes: int = Field(
        default=5,
        ge=1,
        le=60,
        description="Delay used when a due-date reminder would land in the past"
    )
    upcoming_window_days: int = Field(
        default=7,
        ge=1,
        le=90,
        description="How far ahead the dashboard looks for upcoming reminders"
    )


class AdSettings(BaseSettings):
    """Interstitial ad throttling configuration."""

    model_config = SettingsConfigDict(
        env_prefix="IOU_ADS_",
        extra="ignore"
    )

    min_interval_minutes: int = Field(
        default=5,
        ge=0,
        description="Minimum time between two interstitials"
    )
    max_per_session: int = Field(
        default=3,
        ge=0,
        description="Maximum interstitials per app session"
    )
    max_per_day: int = Field(
        default=8,
        ge=0,
        description="Maximum interstitials per calendar day"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="IOU_",
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
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level for structured logging"
    )

    # Display defaults
    default_currency: str = Field(
        default="USD",
        min_length=3,
        max_length=4,
        description="Currency used until the user picks one"
    )
    default_date_format: str = Field(
        default="MM/dd/yyyy",
        description="Display date pattern until the user picks one"
    )

    # Capabilities
    enabled_features: str = Field(
        default="contacts_integration,custom_categories,export,ads",
        description="Comma-separated list of enabled feature names"
    )

    # Validation thresholds
    max_reasonable_amount: float = Field(
        default=1000000.0,
        description="Amounts above this get a sanity warning"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Only accept standard logging level names."""
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def enabled_features_set(self) -> frozenset[str]:
        """Get enabled features as a set."""
        return frozenset(
            name.strip().lower()
            for name in self.enabled_features.split(",")
            if name.strip()
        )


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

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def reminders(self) -> ReminderDefaults:
        return ReminderDefaults()

    @property
    def ads(self) -> AdSettings:
        return AdSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("storage", "reminders", "ads", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
