"""
Configuration Management for Budget Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: Process configuration lives here, user preferences
(currency, theme, spike notifications) live in the store as the
UserSettings singleton. The two are deliberately separate.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Local key-value store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGET_TRACKER_STORAGE_",
        extra="ignore"
    )

    backend: str = Field(
        default="file",
        pattern="^(memory|file)$",
        description="Which key-value backend to use"
    )
    data_dir: Path = Field(
        default=Path(".budget-tracker"),
        description="Directory holding one JSON file per storage key"
    )
    quota_bytes: int = Field(
        default=5 * 1024 * 1024,
        ge=1024,
        description="Store capacity (2 bytes per character, like browser storage)"
    )
    key_prefix: str = Field(
        default="budget-tracker-",
        description="Namespace prepended to every collection key"
    )

    @field_validator('key_prefix')
    @classmethod
    def validate_key_prefix(cls, v: str) -> str:
        """Keys become file names, so path separators are not allowed."""
        if "/" in v or "\\" in v:
            raise ValueError("key_prefix must not contain path separators")
        return v


class RemoteSettings(BaseSettings):
    """Optional remote store client configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGET_TRACKER_REMOTE_",
        extra="ignore"
    )

    timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        le=60,
        description="Timeout for the connectivity check and each request"
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Retry attempts for idempotent remote calls"
    )


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

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
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
    def remote(self) -> RemoteSettings:
        return RemoteSettings()

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

    Returns a dict of {setting_name: is_valid}, plus a
    "<name>_error" entry for every section that failed.
    """
    results = {}
    settings = get_settings()

    for name in ("storage", "remote", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
