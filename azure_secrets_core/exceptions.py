"""
Consolidated exception system with error codes, context, and correlation support.

This module provides a unified exception hierarchy for the entire package,
with automatic logging and correlation ID tracking. Provider failures carry a
typed classification so retry predicates never have to inspect message text.
"""

import threading
import traceback
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

_thread_local = threading.local()


class ErrorCode(str, Enum):
    """Standardized error codes."""

    # System errors (1xxx)
    INTERNAL_ERROR = "1000"
    DATABASE_ERROR = "1001"
    CONFIGURATION_ERROR = "1003"
    TIMEOUT_ERROR = "1004"
    CANCELLED = "1005"

    # Validation errors (2xxx)
    VALIDATION_FAILED = "2000"
    INVALID_FORMAT = "2001"
    MISSING_REQUIRED = "2002"

    # Resource errors (3xxx)
    LIMIT_EXCEEDED = "3005"

    # Business logic errors (4xxx)
    PARTIAL_FAILURE = "4005"

    # External service errors (5xxx)
    EXTERNAL_API_ERROR = "5002"


class BaseError(Exception):
    """Base exception with context, error codes, logging, and error chaining."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        """
        Initialize base error with rich context.

        Args:
            message: Human-readable error message
            error_code: Standardized error code from ErrorCode enum
            status_code: HTTP status code for API responses
            cause: Original exception that caused this error
            **context: Additional context information
        """
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.error_id = str(uuid.uuid4())
        self.context = context

        correlation_id = get_correlation_id()
        if correlation_id:
            self.context["correlation_id"] = correlation_id

        self.context["error_id"] = self.error_id

        if cause:
            self.context["cause"] = {
                "type": type(cause).__name__,
                "message": str(cause),
                "traceback": traceback.format_exception(type(cause), cause, cause.__traceback__),
            }

        self._log_error()

        super().__init__(message)

    def _log_error(self) -> None:
        """Log error with appropriate level based on status code."""
        # Lazy import: the logger module imports this one for correlation IDs
        from .utils.logger import get_logger

        logger = get_logger()

        log_data = {
            "error_id": self.error_id,
            "error_code": self.error_code.value,
            "status_code": self.status_code,
            "error_message": self.message,
            "timestamp": self.timestamp,
            "context": {k: v for k, v in self.context.items() if k not in ["cause", "traceback"]},
        }

        if "correlation_id" in self.context:
            log_data["correlation_id"] = self.context["correlation_id"]

        if self.status_code >= 500:
            logger.error(f"Error {self.error_code.value}: {self.message}", extra=log_data)
        elif self.status_code >= 400:
            logger.warning(f"Client error {self.error_code.value}: {self.message}", extra=log_data)
        else:
            logger.info(f"Error {self.error_code.value}: {self.message}", extra=log_data)

    def to_dict(self, include_cause: bool = False) -> Dict[str, Any]:
        """
        Convert to dict for API responses.

        Args:
            include_cause: Include cause information (useful for debugging)

        Returns:
            Dictionary representation suitable for JSON serialization
        """
        result: Dict[str, Any] = {
            "error": {
                "id": self.error_id,
                "code": self.error_code.value,
                "message": self.message,
                "timestamp": self.timestamp,
                "context": {
                    k: v
                    for k, v in self.context.items()
                    if k not in ["cause", "error_id", "correlation_id"]
                },
            }
        }

        if "correlation_id" in self.context:
            result["error"]["correlation_id"] = self.context["correlation_id"]

        if include_cause and "cause" in self.context:
            result["error"]["cause"] = {
                "type": self.context["cause"]["type"],
                "message": self.context["cause"]["message"],
            }

        return result

    def add_context(self, **kwargs: Any) -> "BaseError":
        """
        Add additional context to the error (fluent interface).

        Returns:
            Self for method chaining
        """
        self.context.update(kwargs)
        return self

    @property
    def error_chain(self) -> List[Exception]:
        """Get the full chain of errors."""
        chain: List[Exception] = [self]
        current = self.cause
        while current:
            chain.append(current)
            current = getattr(current, "cause", None)
        return chain


# Layer-specific base exceptions
class RepositoryError(BaseError):
    """Storage layer errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.DATABASE_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context,
    ):
        super().__init__(message, error_code, status_code, cause, **context)


class ServiceError(BaseError):
    """Service and client layer errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        operation: Optional[str] = None,
        cause: Optional[Exception] = None,
        **context,
    ):
        """Initialize service error with operation context."""
        if operation:
            context["operation"] = operation
        super().__init__(message, error_code, 500, cause, **context)


class ValidationError(BaseError):
    """Validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        cause: Optional[Exception] = None,
        **context,
    ):
        """Initialize validation error with field context."""
        if field:
            context["field"] = field
        super().__init__(message, error_code, 400, cause, **context)


class ConfigurationError(BaseError):
    """Raised when connection settings cannot be resolved."""

    def __init__(self, message: str, cause: Optional[Exception] = None, **context):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, 500, cause, **context)


class ExternalServiceError(BaseError):
    """External service integration errors."""

    def __init__(
        self,
        message: str,
        service_name: str,
        error_code: ErrorCode = ErrorCode.EXTERNAL_API_ERROR,
        cause: Optional[Exception] = None,
        **context,
    ):
        """Initialize external service error with service context."""
        context["service_name"] = service_name
        super().__init__(message, error_code, 502, cause, **context)


# ==================== PROVIDER EXCEPTIONS ====================


class ProviderErrorReason(str, Enum):
    """Classification attached to provider failures by the adapter layer."""

    # Read-after-write propagation lag; expected to resolve on retry
    APPLICATION_NOT_VISIBLE = "application_not_visible"
    PRINCIPAL_NOT_FOUND = "principal_not_found"
    RESOURCE_NOT_FOUND = "resource_not_found"

    # Terminal
    NOT_FOUND = "not_found"
    OBJECT_SIZE_LIMIT = "object_size_limit"
    OTHER = "other"


TRANSIENT_REASONS = frozenset(
    {
        ProviderErrorReason.APPLICATION_NOT_VISIBLE,
        ProviderErrorReason.PRINCIPAL_NOT_FOUND,
        ProviderErrorReason.RESOURCE_NOT_FOUND,
    }
)


class ProviderError(ExternalServiceError):
    """Failure reported by the identity or authorization provider."""

    def __init__(
        self,
        message: str,
        reason: ProviderErrorReason = ProviderErrorReason.OTHER,
        http_status: Optional[int] = None,
        service_name: str = "azure",
        cause: Optional[Exception] = None,
        **context,
    ):
        self.reason = reason
        self.http_status = http_status
        context["reason"] = reason.value
        if http_status is not None:
            context["http_status"] = http_status
        super().__init__(message, service_name, ErrorCode.EXTERNAL_API_ERROR, cause, **context)

    @property
    def transient(self) -> bool:
        return self.reason in TRANSIENT_REASONS

    def _log_error(self) -> None:
        """Propagation lag and missing objects are expected outcomes, logged at debug."""
        if not (self.transient or self.reason == ProviderErrorReason.NOT_FOUND):
            super()._log_error()
            return

        from .utils.logger import get_logger

        get_logger().debug(
            f"Provider reported {self.reason.value}: {self.message}",
            extra={
                "error_id": self.error_id,
                "error_code": self.error_code.value,
                "reason": self.reason.value,
                "http_status": self.http_status,
            },
        )


class MaxPasswordsReachedError(BaseError):
    """Raised when an application cannot hold any more password credentials."""

    def __init__(
        self,
        message: str = "maximum number of Application passwords reached",
        **kwargs,
    ):
        super().__init__(
            message=message, error_code=ErrorCode.LIMIT_EXCEEDED, status_code=409, **kwargs
        )


# ==================== CONTEXT / RETRY EXCEPTIONS ====================


class ContextError(BaseError):
    """Base class for request context termination."""


class ContextCancelledError(ContextError):
    """Raised when the request context was cancelled explicitly."""

    def __init__(self, message: str = "context canceled", **kwargs):
        super().__init__(message=message, error_code=ErrorCode.CANCELLED, status_code=499, **kwargs)


class DeadlineExceededError(ContextError):
    """Raised when the request context deadline passed."""

    def __init__(self, message: str = "context deadline exceeded", **kwargs):
        super().__init__(
            message=message, error_code=ErrorCode.TIMEOUT_ERROR, status_code=504, **kwargs
        )


class RetryError(ServiceError):
    """Raised when a retry loop ends without the operation reporting completion."""

    def __init__(self, cause: ContextError, **context):
        super().__init__(
            f"retry failed: {cause.message}",
            error_code=cause.error_code,
            operation="retry",
            cause=cause,
            **context,
        )


# ==================== AGGREGATE EXCEPTIONS ====================


def _format_errors(errors: List[Exception]) -> str:
    noun = "error" if len(errors) == 1 else "errors"
    lines = "\n".join(f"\t* {err}" for err in errors)
    return f"{len(errors)} {noun} occurred:\n{lines}"


class MultiError(BaseError):
    """Several independent failures reported together."""

    def __init__(self, errors: Iterable[Exception], **context):
        self.errors: List[Exception] = list(errors)
        context["error_count"] = len(self.errors)
        super().__init__(
            _format_errors(self.errors),
            error_code=ErrorCode.PARTIAL_FAILURE,
            status_code=500,
            **context,
        )

    def __len__(self) -> int:
        return len(self.errors)


def aggregate(errors: List[Exception], **context) -> Optional[MultiError]:
    """Return a MultiError for the collected errors, or None if there are none."""
    if not errors:
        return None
    return MultiError(errors, **context)


class ConfigValidationError(ValidationError):
    """All validation failures of a single configuration write."""

    def __init__(self, errors: Iterable[str], **context):
        self.errors: List[str] = list(errors)
        super().__init__(
            _format_errors([ValueError(e) for e in self.errors]),
            error_code=ErrorCode.VALIDATION_FAILED,
            validation_errors=self.errors,
            **context,
        )


# Factory functions for common error patterns
def validation_failed(
    field: str, value: Any, reason: str, cause: Optional[Exception] = None
) -> ValidationError:
    """
    Factory for validation errors.

    Args:
        field: Field that failed validation
        value: The invalid value
        reason: Why validation failed
        cause: Original exception if any

    Returns:
        Configured ValidationError instance
    """
    return ValidationError(
        f"Validation failed for {field}: {reason}",
        field=field,
        error_code=ErrorCode.VALIDATION_FAILED,
        cause=cause,
        value=str(value),
        reason=reason,
    )


# Correlation ID management
def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current thread."""
    _thread_local.correlation_id = correlation_id


def get_correlation_id() -> Optional[str]:
    """Get the current thread's correlation ID."""
    return getattr(_thread_local, "correlation_id", None)


def clear_correlation_id() -> None:
    """Clear the current thread's correlation ID."""
    if hasattr(_thread_local, "correlation_id"):
        delattr(_thread_local, "correlation_id")
