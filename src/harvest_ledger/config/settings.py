"""Configuration settings for Harvest Ledger."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FlatSettings(BaseSettings):
    """Flat settings read from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    data_dir: Path = Field(
        default=Path.home() / ".harvest_ledger",
        validation_alias="HARVEST_DATA_DIR",
        description="Directory holding the local record cache",
    )
    backup_file: Path | None = Field(
        default=None,
        validation_alias="HARVEST_BACKUP_FILE",
        description="JSON database file to connect at start-up",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )

    # Presentation
    currency_symbol: str = Field(default="₹", validation_alias="CURRENCY_SYMBOL")
    business_name: str = Field(
        default="Harvester Manager", validation_alias="BUSINESS_NAME"
    )

    # Reminders
    overdue_after_days: int = Field(default=30, validation_alias="OVERDUE_AFTER_DAYS")
    overdue_months_after_days: int = Field(
        default=60, validation_alias="OVERDUE_MONTHS_AFTER_DAYS"
    )
    backup_reminder_days: int = Field(
        default=7, validation_alias="BACKUP_REMINDER_DAYS"
    )


@lru_cache
def get_settings() -> FlatSettings:
    """Get cached settings instance."""
    return FlatSettings()
