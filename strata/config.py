"""Application configuration from environment variables."""

import logging
from typing import Optional

from pydantic import ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Pydantic loads values from:
    1. OS environment variables (at instantiation time)
    2. .env file in the working directory
    """

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./strata.db",
        description="SQLAlchemy database URL",
    )
    database_echo: bool = Field(default=False, description="Log SQL queries")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="logs/server.log", description="Server log file path")

    # Locale
    locale: str = Field(default="en", description="Babel locale for labels and amounts")
    currency: str = Field(default="AUD", description="ISO currency code for amounts")
    financial_year_start_month: int = Field(
        default=7, description="Calendar month (1-12) the financial year starts in"
    )

    # Documents
    storage_dir: str = Field(default="storage", description="Root directory for stored documents")
    signed_url_secret: str = Field(
        default="change-me", description="HMAC secret for signed download URLs"
    )
    signed_url_ttl_seconds: int = Field(default=3600, description="Signed URL lifetime")
    email_from: str = Field(
        default="noreply@strata.example", description="Sender address for levy notices"
    )

    # API
    api_title: str = Field(default="Strata Levies API", description="API title")
    api_version: str = Field(default="0.1.0", description="API version")

    @field_validator("financial_year_start_month")
    @classmethod
    def _check_month(cls, value: int) -> int:
        if not 1 <= value <= 12:
            raise ValueError("financial_year_start_month must be between 1 and 12")
        return value


# Lazy loader so the environment is read after .env has been loaded
_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
        logger.debug("Settings loaded: database_url=%s", _settings_instance.database_url)
    return _settings_instance


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings_instance
    _settings_instance = None


__all__ = ["Settings", "get_settings", "reset_settings"]
