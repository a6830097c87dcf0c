"""Configuration package."""

from ledger.config.settings import (
    AppSettings,
    CarryForwardPolicy,
    LedgerSettings,
    MessagingSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "CarryForwardPolicy",
    "LedgerSettings",
    "MessagingSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
