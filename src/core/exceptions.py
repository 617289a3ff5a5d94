"""Centralized, structured exception hierarchy for the API logger service.

This module defines the custom exceptions raised outside the decision engine.
They carry a machine-readable `code` for programmatic error handling and a
human-readable `message` for logging and user feedback.

The hierarchy is designed to:
- Provide clear, specific errors for different failure scenarios.
- Map cleanly to HTTP status codes in the API layer.
- Offer a consistent structure for logging and monitoring.

The rate limit decision engine never raises these for expected outcomes; it
returns a denial instead. `RateLimitExceededError` is raised by the HTTP
adapter to turn such a denial into a response.
"""

from __future__ import annotations

from typing import Final, Optional

__all__: Final = [
    "ApiLoggerError",
    "ValidationError",
    "RateLimitExceededError",
    "RuleRepositoryError",
    "LogRepositoryError",
    "AuditSinkError",
]


class ApiLoggerError(Exception):
    """Base exception class for all custom errors in the application.

    Attributes:
        message (str): A human-readable error message, suitable for logging.
        code (str): A unique, machine-readable error code for identifying
                    the type of error programmatically.
    """

    message: str
    code: str = "generic_error"

    def __init__(self, message: str, code: str = "generic_error"):
        self.message = message
        self.code = code
        Exception.__init__(self, self.message)

    # A concise, structured representation used by loggers & FastAPI handlers.
    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Validation errors (typically map to 400 Bad Request)
# ---------------------------------------------------------------------------


class ValidationError(ApiLoggerError):
    """Raised when submitted data (for example a new rule) is invalid.

    Maps to a `400 Bad Request`.
    """

    def __init__(self, message: str, code: str = "validation_error"):
        super().__init__(message, code)


# ---------------------------------------------------------------------------
# Rate limiting errors (429 Too Many Requests)
# ---------------------------------------------------------------------------


class RateLimitExceededError(ApiLoggerError):
    """Raised when the rate limiter denies a call.

    The message is the decision's reason (no rules, no matching rule,
    blocked until T). `retry_after` is set when the caller is blocked and
    becomes the `Retry-After` header.
    """

    def __init__(
        self,
        message: str = "Too many requests",
        code: str = "rate_limit_exceeded",
        retry_after: Optional[int] = None,
    ):
        super().__init__(message, code)
        self.retry_after = retry_after


# ---------------------------------------------------------------------------
# Collaborator errors
# ---------------------------------------------------------------------------


class RuleRepositoryError(ApiLoggerError):
    """Raised when the rule store cannot be read or written.

    Administrative endpoints map this to `503 Service Unavailable`. The
    decision engine converts it into a fail-closed denial.
    """

    def __init__(self, message: str, code: str = "rule_repository_error"):
        super().__init__(message, code)


class LogRepositoryError(ApiLoggerError):
    """Raised when stored API log entries cannot be queried. Maps to `503`."""

    def __init__(self, message: str, code: str = "log_repository_error"):
        super().__init__(message, code)


class AuditSinkError(ApiLoggerError):
    """Raised by an audit sink that failed to store a log entry.

    The audit service logs it and carries on with the remaining sinks.
    """

    def __init__(self, message: str, code: str = "audit_sink_error"):
        super().__init__(message, code)
