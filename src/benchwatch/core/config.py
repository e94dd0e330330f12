"""Configuration management for benchwatch.

This module provides configuration classes using pydantic-settings
for environment variable management and validation.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables with
    the BENCHWATCH_ prefix. Command line flags take precedence.

    Attributes:
        store_dir: Directory holding one history document per repository.
        suite: Default suite name used when none is given.
        regression_threshold: Default fractional regression threshold.
        max_retries: Retries of the load/merge/save sequence on storage errors.
        retry_delay: Delay in seconds between retries.
        lock_timeout_seconds: Timeout for the cross-process store lock.
        max_entries: Entries kept per suite (None = unlimited).
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).

    Example:
        >>> # export BENCHWATCH_REGRESSION_THRESHOLD=0.2
        >>> settings = Settings()
        >>> settings.regression_threshold
        0.2

    Environment Variables:
        BENCHWATCH_STORE_DIR: History directory (default: .benchwatch)
        BENCHWATCH_SUITE: Suite name (default: Benchmark)
        BENCHWATCH_REGRESSION_THRESHOLD: Threshold ratio (default: 0.10)
        BENCHWATCH_MAX_RETRIES: Retry budget (default: 3)
        BENCHWATCH_RETRY_DELAY: Retry delay in seconds (default: 0.5)
        BENCHWATCH_LOCK_TIMEOUT_SECONDS: Lock timeout (default: 10.0)
        BENCHWATCH_MAX_ENTRIES: Retention per suite (default: unlimited)
        BENCHWATCH_LOG_LEVEL: Logging level (default: WARNING)
    """

    model_config = SettingsConfigDict(
        env_prefix="BENCHWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage settings
    store_dir: str = Field(
        default=".benchwatch",
        description="Directory holding one history document per repository",
    )
    suite: str = Field(
        default="Benchmark",
        min_length=1,
        description="Default benchmark suite name",
    )
    lock_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for acquiring the store lock in seconds",
    )
    max_entries: int | None = Field(
        default=None,
        ge=1,
        description="Maximum entries kept per suite (None = unlimited)",
    )

    # Detection settings
    regression_threshold: float = Field(
        default=0.10,
        ge=0,
        description="Fractional slowdown tolerated before a regression is flagged",
    )

    # Ingestion settings
    max_retries: int = Field(
        default=3,
        ge=0,
        le=20,
        description="Retries of the load/merge/save sequence",
    )
    retry_delay: float = Field(
        default=0.5,
        ge=0,
        description="Delay between retries in seconds",
    )

    # General settings
    log_level: str = Field(
        default="WARNING",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
