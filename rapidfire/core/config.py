"""Application configuration using Pydantic Settings.

This module implements the 12-Factor App configuration pattern,
loading settings from environment variables with validation.
"""

from enum import Enum
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment types."""

    DEV = "dev"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application settings with validation.

    All settings can be overridden via environment variables
    matching the field names (case-insensitive).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: Environment = Field(
        default=Environment.DEV,
        description="Application environment",
    )
    app_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    app_port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Server port",
    )
    app_debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # Run defaults (used when the submitted value is absent or non-numeric)
    default_request_count: int = Field(
        default=100,
        ge=0,
        description="Total request count used when none is supplied",
    )
    default_concurrency: int = Field(
        default=10,
        ge=1,
        description="Batch size used when none is supplied",
    )

    # Run limits
    max_request_count: int = Field(
        default=10000,
        ge=1,
        description="Upper bound for the total request count of a run",
    )
    max_concurrency: int = Field(
        default=100,
        ge=1,
        description="Upper bound for requests in flight within one batch",
    )

    # Scheduling
    batch_pause_ms: int = Field(
        default=100,
        ge=0,
        le=60000,
        description="Pause in milliseconds between two consecutive batches",
    )
    request_timeout_sec: float | None = Field(
        default=None,
        gt=0,
        description="Per-request transport timeout in seconds (None disables it)",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "console"] = Field(
        default="json",
        description="Log output format",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str) -> str:
        """Ensure log level is uppercase."""
        if isinstance(v, str):
            return v.upper()
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == Environment.PROD

    @property
    def batch_pause_sec(self) -> float:
        """Inter-batch pause converted to seconds."""
        return self.batch_pause_ms / 1000.0


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
