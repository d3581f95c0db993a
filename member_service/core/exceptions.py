"""Structured exception hierarchy for consistent error handling.

This module defines the exception system of the member service, providing a
rich error model that supports debugging, monitoring, and client
communication.

Key components:
- **ErrorCode enum**: Standardized error identifiers for programmatic handling
- **Severity enum**: Error classification for monitoring and alerting
- **MemberServiceError**: Base exception with rich context and fingerprinting
- **Specialized exceptions**: Bad input, missing entities, authorization,
  document store and external service failures

Store and external service errors are always chained to the driver exception
that caused them; none of them are retried or swallowed in this layer.
"""

import hashlib
import traceback
from enum import Enum
from typing import Any

FINGERPRINT_FRAMES = 5


class ErrorCode(Enum):
    """Standardized error codes for the member service."""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    """An unexpected internal error occurred in the system."""

    BAD_REQUEST = "BAD_REQUEST"
    """Caller input was malformed (empty, duplicate or disallowed values)."""

    NOT_FOUND = "NOT_FOUND"
    """The requested entity could not be found."""

    UNAUTHORIZED = "UNAUTHORIZED"
    """Authentication failed or no credentials were supplied."""

    FORBIDDEN = "FORBIDDEN"
    """The authenticated principal may not perform this action."""

    STORE_READ_ERROR = "STORE_READ_ERROR"
    """A document store read failed."""

    STORE_WRITE_ERROR = "STORE_WRITE_ERROR"
    """A document store write failed."""

    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    """Object storage, search index or event bus call failed."""


class Severity(Enum):
    """Severity levels for errors in the member service."""

    LOW = "LOW"
    """Caller mistakes: bad input, unknown member."""

    MEDIUM = "MEDIUM"
    """Refused actions, such as managing another member's profile."""

    HIGH = "HIGH"
    """Failed authentication, document store or remote service calls."""

    CRITICAL = "CRITICAL"
    """Unhandled exceptions reaching the generic handler."""


class MemberServiceError(Exception):
    """Base exception class for all member service exceptions.

    Args:
        error_code: Unique identifier for the error type (string or ErrorCode enum)
        message: Human-readable error message
        severity: Severity level of the error (defaults to MEDIUM)
        context: Additional context information about the error
        cause: The original exception that caused this error
    """

    def __init__(
        self,
        error_code: str | ErrorCode,
        message: str,
        severity: Severity = Severity.MEDIUM,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.error_code = (
            error_code.value if isinstance(error_code, ErrorCode) else error_code
        )
        self.message = message
        self.severity = severity
        self.context = context or {}
        self.cause = cause

        # Capture stack trace at creation time
        self.stack_trace = traceback.format_stack()[:-1]

        self.fingerprint = self._generate_fingerprint()

        super().__init__(message)
        if cause:
            self.__cause__ = cause

    def _generate_fingerprint(self) -> str:
        # Class, code and the innermost member_service frames group
        # occurrences of the same failure
        parts = [type(self).__name__, self.error_code]
        parts.extend(
            frame.strip().split("\n")[0]
            for frame in self.stack_trace[-FINGERPRINT_FRAMES:]
            if "member_service/" in frame and "site-packages" not in frame
        )
        return hashlib.sha256(":".join(parts).encode()).hexdigest()[:16]

    @property
    def is_expected(self) -> bool:
        """Whether this error belongs to normal operation (LOW or MEDIUM)."""
        return self.severity in (Severity.LOW, Severity.MEDIUM)

    @property
    def should_alert(self) -> bool:
        """Whether this error should trigger alerts (HIGH or CRITICAL)."""
        return self.severity in (Severity.HIGH, Severity.CRITICAL)

    def __str__(self) -> str:
        """Return a string representation of the exception.

        Returns:
            str: A formatted string containing the error code and message
        """
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return a detailed representation of the exception.

        Returns:
            str: A string showing the class name, error code, message, severity,
                and context
        """
        class_name = self.__class__.__name__
        context_str = f", context={self.context}" if self.context else ""
        return (
            f"{class_name}(error_code='{self.error_code}', "
            f"message='{self.message}', severity={self.severity.value}{context_str})"
        )


class BadRequestError(MemberServiceError):
    """Exception raised when caller input is malformed.

    Used for empty, duplicate or disallowed values in query strings, unknown
    collections or attributes, and oversized uploads.
    """

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.BAD_REQUEST,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.LOW, context, cause)


class NotFoundError(MemberServiceError):
    """Exception raised when a unique-key lookup yields no rows."""

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.NOT_FOUND,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.LOW, context, cause)


class UnauthorizedError(MemberServiceError):
    """Exception raised when authentication fails or is missing."""

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.UNAUTHORIZED,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.HIGH, context, cause)


class ForbiddenError(MemberServiceError):
    """Exception raised when a principal may not manage the target member."""

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.FORBIDDEN,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.MEDIUM, context, cause)


class StoreReadError(MemberServiceError):
    """Exception raised when a document store read (scan, query, lookup) fails."""

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.STORE_READ_ERROR,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.HIGH, context, cause)


class StoreWriteError(MemberServiceError):
    """Exception raised when persisting a document fails.

    Covers constraint violations and connectivity failures during create
    and update.
    """

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.STORE_WRITE_ERROR,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.HIGH, context, cause)


class ExternalServiceError(MemberServiceError):
    """Exception raised when object storage, search or the event bus fails.

    Args:
        message: Description of the failure
        service: Name of the failing collaborator (``s3``, ``search``, ``bus``)
        error_code: Error code (defaults to EXTERNAL_SERVICE_ERROR)
        context: Additional context information about the error
        cause: The original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        service: str,
        error_code: str | ErrorCode = ErrorCode.EXTERNAL_SERVICE_ERROR,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.service = service
        merged_context = {"service": service, **(context or {})}
        super().__init__(error_code, message, Severity.HIGH, merged_context, cause)
