"""
Configuration Management for Partnership Ledger

Every setting comes from environment variables (or a .env file in the
working directory) through pydantic-settings.

DESIGN DECISION: one settings class per concern, one prefix per class.
The presence of a spreadsheet ID is what makes Google Sheets the
active primary store; without it the ledger runs on the local file alone.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets primary store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: Optional[str] = Field(
        default=None,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: Optional[str] = Field(
        default=None,
        description="ID of the spreadsheet holding the ledger"
    )
    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the worksheet for transactions"
    )
    retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per Sheets API call before giving up"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: Optional[str]) -> Optional[str]:
        """A missing key file only warns; it may be mounted after startup."""
        if v and not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v

    @property
    def is_configured(self) -> bool:
        """True when a destination spreadsheet has been set."""
        return bool(self.spreadsheet_id and self.spreadsheet_id.strip())


class LocalStoreSettings(BaseSettings):
    """Local JSON fallback store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_file: str = Field(
        default="partnership-ledger-data.json",
        description="Path of the local ledger document"
    )

    @property
    def data_path(self) -> Path:
        return Path(self.data_file)


class AppSettings(BaseSettings):
    """Deployment settings such as log level and partner names."""

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
    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured logs"
    )

    # Partners (deployment specific)
    partner_a_name: str = Field(
        default="Partner A",
        min_length=1,
        description="Display name of the first partner"
    )
    partner_b_name: str = Field(
        default="Partner B",
        min_length=1,
        description="Display name of the second partner"
    )

    @property
    def partners(self) -> tuple[str, str]:
        """Both configured partner names, in display order."""
        return (self.partner_a_name.strip(), self.partner_b_name.strip())


class Settings(BaseSettings):
    """
    Entry point to every settings section.

    Sections are re-read from the environment on each property access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def local_store(self) -> LocalStoreSettings:
        return LocalStoreSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """Process-wide Settings; get_settings.cache_clear() forces a reload."""
    return Settings()


def validate_all_settings() -> dict[str, Any]:
    """
    Load every settings section once and report which ones fail.

    Returns a dict of {setting_name: is_valid}, with an extra
    "<name>_error" entry for every failing section.
    """
    results = {}

    settings = get_settings()

    sections = {
        "google_sheets": lambda: settings.google_sheets,
        "local_store": lambda: settings.local_store,
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
