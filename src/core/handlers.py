"""
Global exception handlers for the FastAPI application.

This module contains centralized handlers for custom application exceptions,
translating them into appropriate HTTP responses.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette import status
from structlog import get_logger

from src.core.exceptions import (
    ApiLoggerError,
    LogRepositoryError,
    RateLimitExceededError,
    RuleRepositoryError,
    ValidationError,
)

__all__ = [
    "rate_limit_exceeded_error_handler",
    "validation_error_handler",
    "repository_error_handler",
    "api_logger_error_handler",
    "register_exception_handlers",
]

logger = get_logger(__name__)


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def rate_limit_exceeded_error_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    """Handles `RateLimitExceededError`, returning a `429 Too Many Requests`.

    The body carries the denial reason. A `Retry-After` header is added when
    the caller is blocked until a known time.

    Args:
        request: The incoming `Request` object.
        exc: The `RateLimitExceededError` instance.

    Returns:
        A `JSONResponse` with a 429 status code and error detail.
    """
    logger.warning(
        "rate_limit_exceeded_response",
        client_ip=_client_ip(request),
        path=request.url.path,
        error_message=exc.message,
        retry_after=exc.retry_after,
    )
    headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after is not None else None
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"detail": exc.message},
        headers=headers,
    )


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handles `ValidationError`, returning a `400 Bad Request`."""
    logger.warning(
        "validation_error",
        error=exc.code,
        client_ip=_client_ip(request),
        path=request.url.path,
        error_message=exc.message,
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": exc.message},
    )


async def repository_error_handler(request: Request, exc: ApiLoggerError) -> JSONResponse:
    """Handles rule and log store failures, returning a `503 Service Unavailable`.

    The underlying error is logged but not exposed to the client.
    """
    logger.error(
        "repository_unavailable",
        error=exc.code,
        path=request.url.path,
        error_message=exc.message,
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage is temporarily unavailable."},
    )


async def api_logger_error_handler(request: Request, exc: ApiLoggerError) -> JSONResponse:
    """Catch-all for application errors without a dedicated handler."""
    logger.error(
        "unhandled_application_error",
        error=exc.code,
        path=request.url.path,
        error_message=exc.message,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An internal error occurred."},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Registers all custom exception handlers with the FastAPI application.

    Starlette resolves handlers along the exception's MRO, so the specific
    subclasses take precedence over the `ApiLoggerError` fallback.

    Args:
        app: The `FastAPI` application instance.
    """
    app.add_exception_handler(RateLimitExceededError, rate_limit_exceeded_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RuleRepositoryError, repository_error_handler)
    app.add_exception_handler(LogRepositoryError, repository_error_handler)
    app.add_exception_handler(ApiLoggerError, api_logger_error_handler)
