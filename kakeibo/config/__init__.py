"""Configuration package."""

from kakeibo.config.settings import (
    GeminiSettings,
    GmailSettings,
    GoogleSheetsSettings,
    LedgerSettings,
    LineSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "GeminiSettings",
    "GmailSettings",
    "GoogleSheetsSettings",
    "LedgerSettings",
    "LineSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
