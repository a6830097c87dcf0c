"""
Configuration Management for the Cash-Flow Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here: store and notification timeouts,
the carry-forward policy used when a date is consolidated for the first
time, transaction limits, and where the file queue writes its messages.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CarryForwardPolicy(str, Enum):
    """
    How the opening balance of a newly consolidated date is resolved.

    PRIOR_DATE: closing balance of the latest record dated strictly before
                the target date.
    MOST_RECENT: closing balance of the latest record overall. Only correct
                 when dates are consolidated in chronological order.
    """
    PRIOR_DATE = "prior_date"
    MOST_RECENT = "most_recent"


class LedgerSettings(BaseSettings):
    """Consolidation and transaction rules."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    store_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Timeout applied to every transaction/balance store call"
    )
    notification_timeout_seconds: float = Field(
        default=2.0,
        gt=0,
        description="Timeout applied to publishing a notification"
    )
    carry_forward_policy: CarryForwardPolicy = Field(
        default=CarryForwardPolicy.PRIOR_DATE,
        description="Where a new daily balance takes its opening balance from"
    )
    max_transaction_amount: int = Field(
        default=1_000_000,
        ge=1,
        description="Exclusive upper bound for a single transaction amount"
    )
    future_date_tolerance_days: int = Field(
        default=1,
        ge=0,
        description="How many days in the future a transaction date can be"
    )
    default_page_size: int = Field(
        default=10,
        ge=1,
        le=100,
    )
    max_page_size: int = Field(
        default=100,
        ge=1,
    )


class MessagingSettings(BaseSettings):
    """File queue configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MESSAGING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    base_path: str = Field(
        default="queues",
        description="Directory holding one sub-directory per queue"
    )
    write_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts made to write a message file before giving up"
    )
    consolidated_channel: str = Field(
        default="daily_balance_consolidated",
        min_length=1,
        description="Queue receiving balance consolidated events"
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
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def messaging(self) -> MessagingSettings:
        return MessagingSettings()

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
    "<setting_name>_error" entry for every section that failed to load.
    """
    results = {}

    settings = get_settings()

    sections = {
        "ledger": lambda: settings.ledger,
        "messaging": lambda: settings.messaging,
        "app": lambda: settings.app,
    }
    for name, load in sections.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
