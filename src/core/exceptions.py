"""Structured exception hierarchy for consistent error handling.

This module defines the exception system shared by the authorization and
security-enforcement pipeline. Two failure channels exist in the pipeline:

- **Soft denial**: a guard or policy says no. This is reported structurally
  by the guard chain and never raised from here.
- **Hard denial**: a security middleware refuses the request (CSRF mismatch,
  disallowed origin, rate limit exceeded). These are raised as the
  exceptions below and mapped to HTTP responses at the API boundary.

Key components:
- **ErrorCode enum**: Standardized error identifiers for programmatic handling
- **Severity enum**: Error classification for monitoring and alerting
- **BastionError**: Base exception with rich context and fingerprinting
- **Specialized exceptions**: Type-specific errors (validation, auth, etc.)
"""

import hashlib
import traceback
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Standardized error codes for the Bastion application."""

    # System errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    """An unexpected internal error occurred in the system."""

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    """Input validation failed due to invalid or malformed data."""

    # Resource errors
    NOT_FOUND = "NOT_FOUND"
    """The requested resource could not be found."""

    COMPONENT_NOT_FOUND = "COMPONENT_NOT_FOUND"
    """A guard or middleware identifier could not be resolved."""

    # Authentication/Authorization errors
    UNAUTHORIZED = "UNAUTHORIZED"
    """Authentication failed or user is not authorized for this action."""

    FORBIDDEN = "FORBIDDEN"
    """The request was denied by a guard or a security middleware."""

    UNKNOWN_POLICY = "UNKNOWN_POLICY"
    """An authorization policy was referenced but never registered."""

    # Request security errors
    CSRF_TOKEN_MISMATCH = "CSRF_TOKEN_MISMATCH"
    """The CSRF header token is missing or does not match the cookie token."""

    ORIGIN_NOT_ALLOWED = "ORIGIN_NOT_ALLOWED"
    """The request Origin is not part of the CORS allow-list."""

    RATE_LIMITED = "RATE_LIMITED"
    """The client exceeded its request budget for the current window."""


class Severity(Enum):
    """Severity levels for errors in the Bastion application."""

    LOW = "LOW"
    """Low severity errors that don't significantly impact functionality."""

    MEDIUM = "MEDIUM"
    """Medium severity errors that may affect some features but not critical ops."""

    HIGH = "HIGH"
    """High severity errors impacting critical functionality or data integrity."""

    CRITICAL = "CRITICAL"
    """Critical errors requiring immediate attention, may cause system failures."""


class BastionError(Exception):
    """Base exception class for all Bastion application exceptions.

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

        # Exclude this frame
        self.stack_trace = traceback.format_stack()[:-1]
        self.fingerprint = self._generate_fingerprint()

        super().__init__(message)
        if cause:
            self.__cause__ = cause

    def _generate_fingerprint(self) -> str:
        """Generate a fingerprint for error grouping.

        Returns:
            str: A hash built from the error type and the raising location.
        """
        max_frames = 5
        relevant_frames = self.stack_trace[-max_frames:]

        fingerprint_data = f"{self.__class__.__name__}:{self.error_code}"
        for frame in relevant_frames:
            if "site-packages" not in frame and "src/" in frame:
                lines = frame.strip().split("\n")
                if lines:
                    fingerprint_data += f":{lines[0]}"

        return hashlib.sha256(fingerprint_data.encode()).hexdigest()[:16]

    @property
    def is_expected(self) -> bool:
        """Whether the error is part of normal operation (LOW or MEDIUM)."""
        return self.severity in (Severity.LOW, Severity.MEDIUM)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        context_str = f", context={self.context}" if self.context else ""
        return (
            f"{class_name}(error_code='{self.error_code}', "
            f"message='{self.message}', severity={self.severity.value}{context_str})"
        )


class ValidationError(BastionError):
    """Exception raised when input validation fails."""

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.VALIDATION_ERROR,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.LOW, context, cause)


class NotFoundError(BastionError):
    """Exception raised when a requested resource cannot be found."""

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.NOT_FOUND,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.LOW, context, cause)


class ComponentNotFoundError(NotFoundError):
    """Exception raised when a guard or middleware identifier is unresolvable.

    Raised by the instance resolver. It is never caught inside the pipeline,
    so a route wired to a missing guard fails closed.

    Args:
        identifier: The identifier that could not be resolved.
    """

    def __init__(self, identifier: object) -> None:
        super().__init__(
            f"No component registered for identifier {identifier!r}",
            error_code=ErrorCode.COMPONENT_NOT_FOUND,
            context={"identifier": str(identifier)},
        )
        self.severity = Severity.HIGH


class UnauthorizedError(BastionError):
    """Exception raised when authentication fails."""

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.UNAUTHORIZED,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.HIGH, context, cause)


class ForbiddenError(BastionError):
    """Exception raised when an authenticated request is not allowed to proceed.

    The API adapter raises this for soft denials (a guard returned False, or a
    middleware never called its continuation) once they reach the HTTP boundary.
    """

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.FORBIDDEN,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.MEDIUM, context, cause)


class UnknownPolicyError(ForbiddenError):
    """Exception raised when an unregistered policy name is asserted."""

    def __init__(self, policy_name: str) -> None:
        super().__init__(
            f"Unknown policy {policy_name}",
            error_code=ErrorCode.UNKNOWN_POLICY,
            context={"policy": policy_name},
        )


class CsrfTokenError(ForbiddenError):
    """Exception raised when the double-submit CSRF check fails."""

    def __init__(
        self,
        message: str = "CSRF token mismatch",
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.CSRF_TOKEN_MISMATCH, context)
        self.severity = Severity.HIGH


class OriginNotAllowedError(ForbiddenError):
    """Exception raised when a request Origin is outside the CORS allow-list."""

    def __init__(self, origin: str) -> None:
        super().__init__(
            "Origin not allowed",
            ErrorCode.ORIGIN_NOT_ALLOWED,
            context={"origin": origin},
        )


class RateLimitExceededError(BastionError):
    """Exception raised when a client exceeds its rate-limit budget.

    Args:
        retry_after_seconds: Seconds until the current lockout window expires.
        key: The bucket key that was throttled.
    """

    def __init__(self, retry_after_seconds: int, key: str) -> None:
        super().__init__(
            ErrorCode.RATE_LIMITED,
            f"Rate limit exceeded. Try again in {retry_after_seconds}s",
            Severity.LOW,
            context={"retry_after_seconds": retry_after_seconds, "key": key},
        )
        self.retry_after_seconds = retry_after_seconds


class BusinessRuleError(BastionError):
    """Exception raised when a business rule violation occurs."""

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.INTERNAL_ERROR,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.MEDIUM, context, cause)
