"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

Every value is read once at startup. The quota, the membership key namespace
and the counter key name must not change while the service is running.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class AdmissionSettings(BaseSettings):
    """Coupon admission rules and per-call time budgets."""

    quota: int = Field(
        100,
        description="Maximum number of coupons granted for the process lifetime",
        ge=1,
    )
    membership_key: str = Field(
        "applied_user",
        description="Key of the shared set holding requesters that already applied",
    )
    counter_key: str = Field(
        "coupon_count",
        description="Key of the shared counter of consumed quota units",
    )
    store_timeout_seconds: float = Field(
        2.0,
        description="Upper bound for a single membership/counter round-trip",
        gt=0,
    )
    publish_timeout_seconds: float = Field(
        2.0,
        description="Upper bound for handing a grant event to the publisher",
        gt=0,
    )
    reset_on_startup: bool = Field(
        True,
        description="Clear membership set and counter before serving traffic",
    )

    model_config = SettingsConfigDict(
        env_prefix="ADMISSION_",
        case_sensitive=False,
    )


class StoreSettings(BaseSettings):
    """Shared atomic store configuration."""

    backend: str = Field(
        "memory",
        description="Store backend: 'memory' (single process) or 'redis'",
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL (used when backend is 'redis')",
    )
    socket_timeout_seconds: float = Field(
        1.0,
        description="Redis socket timeout in seconds",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        case_sensitive=False,
    )


class PublisherSettings(BaseSettings):
    """Grant publisher configuration."""

    backend: str = Field(
        "memory",
        description="Publisher backend: 'memory' (bounded queue) or 'kafka'",
    )
    queue_size: int = Field(
        10000,
        description="Capacity of the in-memory grant channel",
        ge=1,
    )
    kafka_bootstrap_servers: str = Field(
        "localhost:9092",
        description="Comma-separated Kafka bootstrap servers",
    )
    kafka_topic: str = Field(
        "coupon_create",
        description="Topic receiving coupon grant events",
    )
    max_attempts: int = Field(
        3,
        description="Enqueue attempts per grant event (1 disables retry)",
        ge=1,
    )
    backoff_base_seconds: float = Field(
        0.05,
        description="Initial delay between enqueue attempts",
        ge=0,
    )
    backoff_max_seconds: float = Field(
        0.5,
        description="Maximum delay between enqueue attempts",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="PUBLISHER_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: 'json' or 'plain'")
    output: str = Field("stdout", description="Log destination: 'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output is 'file'")
    max_bytes: int = Field(10_485_760, description="Rotate log file after this size (0 disables)")
    backup_count: int = Field(5, description="Number of rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if a value is out of range.
    """

    app_env: str = APP_ENV
    admission: AdmissionSettings = Field(default_factory=AdmissionSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    publisher: PublisherSettings = Field(default_factory=PublisherSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()
