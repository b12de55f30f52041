"""
Centralized application configuration for the Azure secrets core.

This module provides a unified configuration system with support for:
- Environment variables
- Feature flags
- Client lifetime and retry tuning
- Validation using Pydantic

Azure connection settings (subscription, tenant, client credentials) are not
part of this object; they are resolved per client from stored configuration
and the environment by ``client_settings``.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .constants import EnvironmentVariable, LogLevel, QueueName, Timeouts


class DatabaseSettings(BaseModel):
    """Database connection settings for configuration storage."""

    connection_string: str = Field(
        default_factory=lambda: os.getenv(
            EnvironmentVariable.DATABASE_URL.value, "sqlite:///./azure_secrets.db"
        ),
        description="Database connection string",
    )
    echo: bool = Field(default=False, description="Echo SQL statements")


class QueueConfig(BaseModel):
    """Queue configuration for Azure Storage Queues."""

    connection_string: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.AZURE_STORAGE_CONNECTION.value, ""),
        description="Azure Storage connection string",
    )
    audit_queue_name: str = Field(
        default=QueueName.AUDIT_LOGS.value, description="Queue receiving audit log records"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.LOG_LEVEL.value, LogLevel.INFO.value),
        description="Logging level",
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )

    @field_validator("level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {level.value for level in LogLevel}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class FeatureFlags(BaseModel):
    """Feature flags for controlling package behavior."""

    enable_audit_queue: bool = Field(
        default=False, description="Ship log records to the audit Azure Storage queue"
    )
    enable_operation_logging: bool = Field(
        default=True, description="Log ENTER/EXIT lines around decorated operations"
    )


class ClientConfig(BaseModel):
    """Tuning for cached clients and the retry engine."""

    lifetime_seconds: int = Field(
        default=Timeouts.CLIENT_LIFETIME, gt=0, description="Fixed lifetime of a cached client"
    )
    retry_timeout_seconds: float = Field(
        default=Timeouts.RETRY_CEILING, gt=0, description="Retry ceiling when no deadline is set"
    )
    default_lease_seconds: int = Field(
        default=Timeouts.DEFAULT_LEASE, gt=0, description="Lease used when no TTL is configured"
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    environment: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.APP_ENV.value, "development"),
        description="Application environment",
    )
    debug: bool = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.DEBUG.value, "false").lower()
        == "true",
        description="Debug mode",
    )

    database: DatabaseSettings = Field(
        default_factory=DatabaseSettings, description="Database settings"
    )
    queue: QueueConfig = Field(default_factory=QueueConfig, description="Queue configuration")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    features: FeatureFlags = Field(default_factory=FeatureFlags, description="Feature flags")
    client: ClientConfig = Field(default_factory=ClientConfig, description="Client configuration")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables."""
        return cls()


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None
