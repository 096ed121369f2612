"""
Eligibility Verification Configuration
Settings for the 270/271 eligibility core.
Source: https://docs.pydantic.dev/latest/concepts/pydantic_settings/
Verified: 2026-10-19
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from eligibility_verifier.services.edi.x12_base import validate_npi


class EligibilitySettings(BaseSettings):
    """
    Eligibility verification configuration settings.

    Every value can be overridden through an ``ELIGIBILITY_`` prefixed
    environment variable or a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="ELIGIBILITY_",
    )

    # =========================================================================
    # Verification Limits
    # =========================================================================
    TIMEOUT_SECONDS: float = Field(
        default=30.0,
        gt=0,
        description="Upper bound for one transport round trip",
    )
    CACHE_TTL_HOURS: int = Field(
        default=24,
        ge=1,
        description="How long a verification result stays fresh",
    )
    MAX_RETRY_ATTEMPTS: int = Field(
        default=3,
        ge=0,
        description="Caller-initiated retries allowed per record",
    )

    # =========================================================================
    # Provider Identity (information receiver in the 270)
    # =========================================================================
    PROVIDER_NAME: str = Field(
        default="DAYBREAK HEALTH",
        description="Organization name sent in NM1*1P",
    )
    PROVIDER_NPI: str = Field(
        default="",
        description="National Provider Identifier sent in NM1*1P",
    )

    # =========================================================================
    # Clearinghouse
    # =========================================================================
    TEST_MODE: bool = Field(
        default=False,
        description="Use the simulated transport instead of the clearinghouse",
    )
    CLEARINGHOUSE_ENDPOINT: Optional[str] = Field(
        default=None,
        description="Clearinghouse eligibility endpoint URL",
    )
    CLEARINGHOUSE_API_KEY: Optional[str] = Field(
        default=None,
        description="Bearer token for the clearinghouse",
    )
    CLEARINGHOUSE_CONNECT_TIMEOUT: float = Field(
        default=10.0,
        gt=0,
        description="Connect timeout for the clearinghouse HTTP client",
    )
    SIMULATED_TIMEOUT_DELAY_SECONDS: Optional[float] = Field(
        default=None,
        ge=0,
        description="Delay for simulated TIMEOUT members (defaults to timeout + 1s)",
    )

    # =========================================================================
    # Persistence
    # =========================================================================
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///:memory:",
        description="Async SQLAlchemy URL for insurance verification records",
    )
    DB_ECHO: bool = Field(default=False, description="Log SQL statements")

    # =========================================================================
    # Logging
    # =========================================================================
    LOG_LEVEL: str = Field(default="INFO", description="Root log level")
    JSON_LOGS: bool = Field(default=False, description="Serialize logs as JSON")

    @field_validator("PROVIDER_NPI")
    @classmethod
    def validate_provider_npi(cls, v: str) -> str:
        """Blank or a check-digit valid 10 digit NPI."""
        npi = v.strip()
        if npi and not validate_npi(npi):
            raise ValueError(f"Invalid NPI: {v}")
        return npi

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate the log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {v}")
        return level

    @property
    def cache_ttl_seconds(self) -> int:
        """Cache TTL expressed in seconds."""
        return self.CACHE_TTL_HOURS * 3600

    @property
    def simulated_timeout_delay(self) -> float:
        """Delay the simulator waits before answering a TIMEOUT member."""
        if self.SIMULATED_TIMEOUT_DELAY_SECONDS is not None:
            return self.SIMULATED_TIMEOUT_DELAY_SECONDS
        return self.TIMEOUT_SECONDS + 1


# Singleton instance
_settings: Optional[EligibilitySettings] = None


def get_settings() -> EligibilitySettings:
    """
    Get cached eligibility settings instance.

    Returns:
        EligibilitySettings instance
    """
    global _settings
    if _settings is None:
        _settings = EligibilitySettings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
