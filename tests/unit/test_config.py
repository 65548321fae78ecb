"""Unit tests for configuration loading."""

import pytest
from pydantic import ValidationError

from strata.config import Settings, get_settings, reset_settings


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("LOCALE", raising=False)
        monkeypatch.delenv("FINANCIAL_YEAR_START_MONTH", raising=False)

        settings = Settings(_env_file=None)

        assert settings.locale == "en"
        assert settings.financial_year_start_month == 7
        assert settings.signed_url_ttl_seconds == 3600

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("CURRENCY", "NZD")
        monkeypatch.setenv("FINANCIAL_YEAR_START_MONTH", "1")

        settings = Settings(_env_file=None)

        assert settings.currency == "NZD"
        assert settings.financial_year_start_month == 1

    def test_invalid_start_month(self, monkeypatch):
        monkeypatch.setenv("FINANCIAL_YEAR_START_MONTH", "13")

        with pytest.raises(ValidationError, match="between 1 and 12"):
            Settings(_env_file=None)

    def test_get_settings_is_cached_until_reset(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        assert get_settings() is first

        reset_settings()
        assert get_settings().log_level == "DEBUG"
