"""Configuration package."""

from financeflow.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    Settings,
    get_settings,
    is_storage_configured,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "Settings",
    "get_settings",
    "is_storage_configured",
    "validate_all_settings",
]
