"""
Configuration Management for Budget Buddy

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what the backend depends on and
ensures all required configuration is validated at startup.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Relational store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGET_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: str = Field(
        default="sqlite+aiosqlite:///./budget_buddy.db",
        description="SQLAlchemy async database URL"
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements to the log"
    )
    enforce_foreign_keys: bool = Field(
        default=True,
        description="Turn on SQLite foreign key enforcement for every connection"
    )

    @field_validator('url')
    @classmethod
    def validate_async_driver(cls, v: str) -> str:
        """The engine is async, so the URL must name an async driver."""
        if "+" not in v.split("://", 1)[0]:
            raise ValueError(
                f"Database URL '{v}' has no driver. "
                "Use an async driver, e.g. sqlite+aiosqlite:///./budget_buddy.db"
            )
        return v


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
        description="Enable debug mode"
    )

    # Service identity (reported by the health check)
    service_name: str = Field(
        default="Budget Buddy Backend",
        description="Service name"
    )
    service_version: str = Field(
        default="1.0.0",
        description="Service version"
    )

    # Dashboard defaults
    default_recent_expenses_limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="How many recent expenses to return when no limit is given"
    )
    max_recent_expenses_limit: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Upper bound accepted for the recent expenses limit"
    )

    # Savings defaults
    default_history_months: int = Field(
        default=6,
        ge=1,
        le=36,
        description="How many months of savings history to return by default"
    )
    sync_tolerance: Decimal = Field(
        default=Decimal("0.00"),
        ge=0,
        description="Largest difference between goal totals and plan totals still reported as synced"
    )

    # Audit
    persist_audit_events: bool = Field(
        default=True,
        description="Store audit events in the database as well as the log"
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


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.database
        results["database"] = True
    except Exception as e:
        results["database"] = False
        results["database_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
