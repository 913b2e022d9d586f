"""
Configuration Settings

This module defines relay configuration using Pydantic Settings.
All configuration is loaded from environment variables or .env file.

Design Decisions:
- Uses pydantic-settings for type-safe configuration
- Settings are frozen: read once at startup, read-only afterwards
- Invalid values fail fast with a ValidationError instead of
  silently falling back to a broken configuration
- An empty SHARED_KEY is valid but disables the relay (every call is 401)
"""

from __future__ import annotations

from urllib.parse import urlsplit

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["Settings", "settings"]


class Settings(BaseSettings):
    """
    Relay settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    Durations are given in milliseconds, matching the variable names.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Upstream Configuration
    TARGET_BASE: str = Field(
        default="https://irrocloud.example.com",
        description="HTTPS base URL every relayed path is appended to"
    )
    CONNECT_TIMEOUT_MS: int = Field(
        default=5000,
        gt=0,
        description="Connect timeout for each upstream attempt"
    )
    REQ_TIMEOUT_MS: int = Field(
        default=10000,
        gt=0,
        description="Overall timeout for each upstream attempt"
    )
    MAX_RETRIES: int = Field(
        default=3,
        ge=1,
        description="Maximum number of upstream attempts per relayed request"
    )
    BACKOFF_MS: int = Field(
        default=250,
        ge=0,
        description="Backoff unit; attempt N waits BACKOFF_MS * N before retrying"
    )
    USER_AGENT: str = Field(
        default="HTTPSRelay/1.0",
        description="User-Agent header sent to the upstream"
    )

    # Access Configuration
    SHARED_KEY: str = Field(
        default="",
        description="Secret expected in /relay/{key}/...; empty disables the relay"
    )
    RATE_LIMIT_POINTS: int = Field(
        default=60,
        ge=1,
        description="Requests admitted per client within one window"
    )
    RATE_LIMIT_DURATION: int = Field(
        default=60,
        ge=1,
        description="Rate limit window length in seconds"
    )
    TRUST_FORWARDED_FOR: bool = Field(
        default=False,
        description="Use the first X-Forwarded-For address as client identity"
    )

    # Server Configuration
    HOST: str = Field(default="0.0.0.0", description="Listening interface")
    PORT: int = Field(default=80, ge=1, le=65535, description="Listening port")
    LOG_LEVEL: str = Field(default="INFO", description="Root logging level")

    @field_validator("TARGET_BASE")
    @classmethod
    def validate_target_base(cls, value: str) -> str:
        """Strip trailing slashes and require an absolute https:// URL."""
        value = value.strip().rstrip("/")
        parsed = urlsplit(value)
        if parsed.scheme != "https" or not parsed.netloc:
            raise ValueError(f"TARGET_BASE must be an absolute https:// URL, got {value!r}")
        return value

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(f"Unknown LOG_LEVEL {value!r}")
        return value

    @property
    def connect_timeout(self) -> float:
        return self.CONNECT_TIMEOUT_MS / 1000

    @property
    def request_timeout(self) -> float:
        return self.REQ_TIMEOUT_MS / 1000

    @property
    def backoff_unit(self) -> float:
        return self.BACKOFF_MS / 1000


settings = Settings()
