"""
Configuration Management for FinanceFlow

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The remote backend is optional. When it is missing or still holds the
placeholder values from .env.example, the app runs in demo mode with
in-memory storage instead of failing at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Values shipped in .env.example; treated as "not configured"
PLACEHOLDER_VALUES = frozenset({
    "",
    "your-spreadsheet-id",
    "path/to/credentials.json",
})


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Worksheet names within the spreadsheet
    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the sheet for transactions"
    )
    accounts_sheet_name: str = Field(
        default="Accounts",
        description="Name of the sheet for accounts"
    )
    categories_sheet_name: str = Field(
        default="Categories",
        description="Name of the sheet for user categories"
    )
    payment_methods_sheet_name: str = Field(
        default="PaymentMethods",
        description="Name of the sheet for user payment methods"
    )

    @field_validator("credentials_path")
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if v not in PLACEHOLDER_VALUES and not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v

    @property
    def is_placeholder(self) -> bool:
        return (
            self.credentials_path in PLACEHOLDER_VALUES
            or self.spreadsheet_id in PLACEHOLDER_VALUES
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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    force_demo_mode: bool = Field(
        default=False,
        description="Use in-memory storage even if Google Sheets is configured"
    )

    # Display
    currency_code: str = Field(
        default="BRL",
        min_length=3,
        max_length=3,
        description="ISO currency code shown in the UI"
    )
    currency_symbol: str = Field(
        default="R$",
        description="Currency symbol shown in the UI"
    )

    # Sanity limit for a single transaction
    max_transaction_amount: float = Field(
        default=10_000_000.0,
        gt=0,
        description="Largest amount accepted for one transaction"
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

    # Sub-settings are loaded lazily so a missing backend doesn't
    # stop the app from starting in demo mode

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

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


def is_storage_configured() -> bool:
    """
    True when a real remote backend should be used.

    Missing variables, placeholder values, or force_demo_mode all mean
    demo mode.
    """
    settings = get_settings()
    if settings.app.force_demo_mode:
        return False
    try:
        sheets = settings.google_sheets
    except Exception:
        return False
    return not sheets.is_placeholder


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        sheets = settings.google_sheets
        results["google_sheets"] = not sheets.is_placeholder
        if sheets.is_placeholder:
            results["google_sheets_error"] = "Placeholder values in configuration"
    except Exception as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
