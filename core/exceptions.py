"""
Custom exceptions for the export pipeline with structured error context.

Every exception in this module is FATAL: it aborts the export run. Data
quality problems (a user without an email, a discussion without comments)
never raise; the archive store records them in its report instead.

Exception Hierarchy:
    ExportException (base)
    ├── ExtractionError
    │   └── APIExtractionError
    │       ├── AuthenticationError
    │       ├── ResourceNotFoundError
    │       ├── NetworkError
    │       └── ThrottleError
    ├── TransformationError
    │   └── TextExtractionError
    ├── PrerequisiteError
    ├── ArchiveError
    ├── PackagingError
    └── RetryableError / NonRetryableError (mixins)
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class ExportException(Exception):
    """
    Base exception for all export-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (url, status code, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(ExportException):
    """
    Mixin for errors raised after a retryable condition gave up.

    The only retried condition is the API throttle (HTTP 503), and it is
    retried forever unless a retry cap is configured.
    """
    pass


class NonRetryableError(ExportException):
    """
    Mixin for errors that are never retried.

    Use this for permanent errors like:
    - Authentication failures (HTTP 401, 403)
    - Resource not found (HTTP 404)
    - Connection failures
    """
    pass


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(ExportException):
    """Base exception for remote data retrieval failures."""
    pass


class APIExtractionError(ExtractionError):
    """
    Exception raised when a request against the remote API fails.

    Context should include:
        - url: The resource that failed
        - status_code: HTTP status code (if applicable)
        - response_body: Response body (truncated)
    """
    pass


class AuthenticationError(NonRetryableError, APIExtractionError):
    """Authentication failures (HTTP 401, 403)."""
    pass


class ResourceNotFoundError(NonRetryableError, APIExtractionError):
    """Resource not found (HTTP 404)."""
    pass


class NetworkError(NonRetryableError, APIExtractionError):
    """Transport-level failures (connection refused, timeouts, ...)."""
    pass


class ThrottleError(RetryableError, APIExtractionError):
    """Throttle (HTTP 503) persisted past the configured retry cap."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        retries: int = 0
    ):
        super().__init__(message, context, original_exception)
        self.retries = retries
        self.context["retries"] = retries


# ============================================================================
# Transformation Errors
# ============================================================================

class TransformationError(ExportException):
    """Base exception for failures while mapping remote records."""
    pass


class TextExtractionError(TransformationError):
    """
    Exception raised when HTML body conversion fails.

    Context should include:
        - command: External command that was run (if any)
        - returncode: Its exit status
    """
    pass


class PrerequisiteError(ExportException):
    """A required external tool is not available."""
    pass


# ============================================================================
# Archive Errors
# ============================================================================

class ArchiveError(ExportException):
    """
    Caller-contract violation or I/O failure in the archive store.

    Raised for a missing, malformed or unknown parent key, for adding to
    a store that has already been packaged, and when the working directory
    or an entity file cannot be written.
    """
    pass


class PackagingError(ExportException):
    """
    Exception raised when the export tree cannot be packaged.

    Context should include:
        - directory: Export tree being packaged
        - archive: Target archive path
    """
    pass
