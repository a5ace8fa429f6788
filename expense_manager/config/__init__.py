"""Configuration package."""

from expense_manager.config.settings import (
    AppSettings,
    SecuritySettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "SecuritySettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
