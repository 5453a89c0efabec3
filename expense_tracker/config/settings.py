"""
Configuration Management for Expense Tracker

Settings come from environment variables or a .env file via
pydantic-settings.

DESIGN DECISION: Every knob lives in this module, so where data lives
and how the app reacts to a failing disk are decided in one place.
"""

import re
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_SLOT_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class StorageSettings(BaseSettings):
    """Durable storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="EXPENSE_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: Literal["file", "memory"] = Field(
        default="file",
        description="Where the collection is kept between runs"
    )
    data_dir: str = Field(
        default=".expense_data",
        description="Directory holding the JSON slot files"
    )
    storage_key: str = Field(
        default="expense-tracker-data",
        description="Name of the slot holding the serialized collection"
    )

    @field_validator('storage_key')
    @classmethod
    def validate_storage_key(cls, v: str) -> str:
        """The slot name doubles as a file name, so keep it plain."""
        if not _SLOT_NAME.match(v):
            raise ValueError(
                f"Invalid storage key {v!r}: use letters, digits, '.', '_' or '-'"
            )
        return v

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()


class AppSettings(BaseSettings):
    """Behaviour and display settings (no prefix)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Name shown on the settings page (development, production, ...)"
    )
    debug_mode: bool = Field(
        default=False,
        description="Log at DEBUG regardless of log_level"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local logs"
    )

    # Storage failure policy
    strict_persistence: bool = Field(
        default=False,
        description="Raise PersistenceDegradedError when a save to disk fails"
    )

    # Display
    currency_symbol: str = Field(
        default="$",
        max_length=4,
        description="Symbol shown in front of amounts"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug_mode else self.log_level


class Settings(BaseSettings):
    """Entry point to both settings sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily so a broken section does not
    # prevent the others from loading

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings root. Call get_settings.cache_clear() in tests."""
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Load each settings section and report which ones are valid.

    Failed sections also get a "<name>_error" entry with the message.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.storage
        results["storage"] = True
    except Exception as e:
        results["storage"] = False
        results["storage_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
