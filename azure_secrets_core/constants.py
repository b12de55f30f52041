"""
Constants and enums for the Azure secrets core.

This module centralizes the magic strings and fixed values used throughout
the package to ensure consistency and maintainability.
"""

from enum import Enum


class EnvironmentVariable(str, Enum):
    """Standard environment variable names."""

    # Azure connection settings (take precedence over stored configuration)
    AZURE_SUBSCRIPTION_ID = "AZURE_SUBSCRIPTION_ID"
    AZURE_TENANT_ID = "AZURE_TENANT_ID"
    AZURE_CLIENT_ID = "AZURE_CLIENT_ID"
    AZURE_CLIENT_SECRET = "AZURE_CLIENT_SECRET"
    AZURE_ENVIRONMENT = "AZURE_ENVIRONMENT"

    # Ambient settings
    AZURE_STORAGE_CONNECTION = "AzureWebJobsStorage"
    DATABASE_URL = "DATABASE_URL"
    APP_ENV = "APP_ENV"
    LOG_LEVEL = "LOG_LEVEL"
    DEBUG = "DEBUG"


class LogLevel(str, Enum):
    """Standard logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class QueueName(str, Enum):
    """Standard queue names."""

    AUDIT_LOGS = "audit-logs-queue"


class LogContextKey(str, Enum):
    """Standard keys for logging context."""

    OPERATION_ID = "operation_id"
    CORRELATION_ID = "correlation_id"
    DURATION_MS = "duration_ms"
    STATUS = "status"
    ERROR_CODE = "error_code"
    SOURCE_MODULE = "source_module"
    OPERATION = "operation"


class StorageKey(str, Enum):
    """Keys of records held in configuration storage."""

    CONFIG = "config"


# Azure naming
APP_NAME_PREFIX = "vault-"
DEFAULT_ENVIRONMENT_NAME = "AZUREPUBLICCLOUD"

# Key IDs are not secret, and they're a convenient way for an operator to identify
# generated passwords. They must be UUIDs, so the three leading bytes are the marker.
KEY_ID_MARKER = "ffffff"

PASSWORD_LENGTH = 36


class Timeouts:
    """Timeout values in seconds."""

    # The plugin host's default request timeout is 90s; retries must expire before then.
    RETRY_CEILING = 80
    RETRY_MIN_DELAY_MS = 2000
    RETRY_JITTER_MS = 6000

    CLIENT_LIFETIME = 30 * 60

    DEFAULT_LEASE = 60 * 60
    EXTERNAL_API_CALL = 60
