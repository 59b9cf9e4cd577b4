"""
Configuration Management for Kakeibo

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here, but components never
reach for it themselves. The application factory reads the settings once and
hands each component the settings object it needs at construction time.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets ledger store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        min_length=1,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    ledger_sheet_name: str = Field(
        default="Ledger",
        description="Name of the sheet holding ledger entries"
    )
    settings_sheet_name: str = Field(
        default="Settings",
        description="Name of the key/value sheet for household settings"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class GeminiSettings(BaseSettings):
    """Gemini advisor configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        min_length=1,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=1500,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class LineSettings(BaseSettings):
    """LINE Messaging API configuration (outbound push only)."""

    model_config = SettingsConfigDict(
        env_prefix="LINE_",
        extra="ignore"
    )

    access_token: str = Field(
        ...,
        min_length=1,
        description="Channel access token"
    )
    push_url: str = Field(
        default="https://api.line.me/v2/bot/message/push",
        description="Push message endpoint"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Fallback recipient when the settings sheet has none"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="HTTP timeout for a push call"
    )


class GmailSettings(BaseSettings):
    """Gmail / Google Calendar source configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GMAIL_",
        extra="ignore"
    )

    token_path: str = Field(
        ...,
        description="Path to the authorized-user OAuth token JSON"
    )
    processed_label: str = Field(
        default="kakeibo-processed",
        description="Label attached to messages that were already ingested"
    )
    calendar_id: str = Field(
        default="primary",
        description="Calendar searched for merchant hints"
    )


class LedgerSettings(BaseSettings):
    """
    Core ledger behaviour.

    These values have working defaults so the pure components
    (parser, aggregation, alerts) can run without any environment.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    timezone: str = Field(
        default="Asia/Tokyo",
        description="Timezone used to decide 'today' and month boundaries"
    )
    default_monthly_budget: int = Field(
        default=120000,
        gt=0,
        description="Budget used when the settings sheet has none"
    )
    recent_entries_limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Number of entries in a snapshot's recent list"
    )

    # Context resolution windows
    event_window_minutes: int = Field(
        default=120,
        ge=0,
        description="Calendar search half-window around a transaction"
    )
    mail_window_minutes: int = Field(
        default=60,
        ge=0,
        description="Mail search half-window around a transaction"
    )
    mail_search_limit: int = Field(
        default=5,
        ge=1,
        description="Maximum mail hits inspected per resolution"
    )

    # Batch ingestion caps
    ingest_batch_size: int = Field(
        default=200,
        ge=1,
        le=500,
        description="Maximum messages fetched per issuer query per run"
    )
    ingest_lookback_days: int = Field(
        default=2,
        ge=1,
        description="How far back a scheduled ingestion run searches"
    )

    # Snippet length for failed parses
    parse_failure_snippet_chars: int = Field(
        default=200,
        ge=0,
        description="Characters of raw body logged when a parse fails"
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

    # Sub-settings are built lazily so a partially configured
    # environment still yields the parts that are present.

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def line(self) -> LineSettings:
        return LineSettings()

    @property
    def gmail(self) -> GmailSettings:
        return GmailSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()


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

    Returns a dict of {setting_name: is_valid} plus a
    `<name>_error` entry for each failing group.
    """
    results = {}
    settings = get_settings()

    for name in ("google_sheets", "gemini", "line", "gmail", "ledger"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
