"""Configuration package."""

from orgledger.config.settings import (
    AppSettings,
    FanOutMode,
    FirebaseSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "FanOutMode",
    "FirebaseSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
