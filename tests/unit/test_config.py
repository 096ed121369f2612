"""
Unit Tests for Configuration Management
Tests settings validation and property methods
"""

import pytest
from pydantic import ValidationError

from eligibility_verifier.core.config import EligibilitySettings, get_settings, reset_settings


@pytest.mark.unit
class TestSettingsDefaults:
    """Test default values"""

    def test_defaults(self):
        settings = EligibilitySettings(_env_file=None)

        assert settings.TIMEOUT_SECONDS == 30.0
        assert settings.CACHE_TTL_HOURS == 24
        assert settings.MAX_RETRY_ATTEMPTS == 3
        assert settings.TEST_MODE is False
        assert settings.CLEARINGHOUSE_ENDPOINT is None
        assert settings.DATABASE_URL.startswith("sqlite+aiosqlite")
        assert settings.LOG_LEVEL == "INFO"

    def test_environment_override(self, monkeypatch):
        """Test that ELIGIBILITY_ prefixed variables override defaults"""
        monkeypatch.setenv("ELIGIBILITY_TIMEOUT_SECONDS", "5")
        monkeypatch.setenv("ELIGIBILITY_MAX_RETRY_ATTEMPTS", "1")
        monkeypatch.setenv("ELIGIBILITY_TEST_MODE", "true")

        settings = EligibilitySettings(_env_file=None)

        assert settings.TIMEOUT_SECONDS == 5.0
        assert settings.MAX_RETRY_ATTEMPTS == 1
        assert settings.TEST_MODE is True

    def test_unprefixed_variables_ignored(self, monkeypatch):
        monkeypatch.setenv("TIMEOUT_SECONDS", "5")
        assert EligibilitySettings(_env_file=None).TIMEOUT_SECONDS == 30.0


@pytest.mark.unit
class TestSettingsValidation:
    """Test configuration validation"""

    @pytest.mark.parametrize("level", ["debug", "Warning", "TRACE"])
    def test_log_level_normalized(self, level):
        assert EligibilitySettings(_env_file=None, LOG_LEVEL=level).LOG_LEVEL == level.upper()

    def test_log_level_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            EligibilitySettings(_env_file=None, LOG_LEVEL="LOUD")

        errors = exc_info.value.errors()
        assert any("LOG_LEVEL" in str(error["loc"]) for error in errors)

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            EligibilitySettings(_env_file=None, TIMEOUT_SECONDS=0)

    def test_cache_ttl_minimum(self):
        with pytest.raises(ValidationError):
            EligibilitySettings(_env_file=None, CACHE_TTL_HOURS=0)

    @pytest.mark.parametrize("npi, expected", [("", ""), ("  ", ""), (" 1234567893 ", "1234567893")])
    def test_provider_npi_accepted(self, npi, expected):
        assert EligibilitySettings(_env_file=None, PROVIDER_NPI=npi).PROVIDER_NPI == expected

    @pytest.mark.parametrize("npi", ["1234567890", "12345", "ABCDEFGHIJ"])
    def test_provider_npi_rejected(self, npi):
        with pytest.raises(ValidationError) as exc_info:
            EligibilitySettings(_env_file=None, PROVIDER_NPI=npi)

        assert any("PROVIDER_NPI" in str(error["loc"]) for error in exc_info.value.errors())


@pytest.mark.unit
class TestSettingsProperties:
    """Test computed properties"""

    def test_cache_ttl_seconds(self):
        assert EligibilitySettings(_env_file=None).cache_ttl_seconds == 86400

    def test_simulated_timeout_delay_default(self):
        settings = EligibilitySettings(_env_file=None, TIMEOUT_SECONDS=2)
        assert settings.simulated_timeout_delay == 3

    def test_simulated_timeout_delay_explicit(self):
        settings = EligibilitySettings(_env_file=None, SIMULATED_TIMEOUT_DELAY_SECONDS=0.5)
        assert settings.simulated_timeout_delay == 0.5


def test_get_settings_caching():
    """Test that get_settings returns the cached instance until reset"""
    first = get_settings()
    assert get_settings() is first

    reset_settings()
    assert get_settings() is not first
