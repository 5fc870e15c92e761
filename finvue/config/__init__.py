"""Configuration package."""

from finvue.config.settings import (
    AppSettings,
    Settings,
    StoreSettings,
    ValuationSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "Settings",
    "StoreSettings",
    "ValuationSettings",
    "get_settings",
    "validate_all_settings",
]
