"""Application factory for creating and configuring the FastAPI application.

This module provides a factory function to create a properly configured FastAPI application
with the rate limiting components, exception handlers, and routers registered.
"""

from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from src.adapters.api.v1 import api_router
from src.core.config.settings import Settings, settings as default_settings
from src.core.handlers import register_exception_handlers
from src.core.lifecycle import create_lifespan_manager
from src.infrastructure.dependency_injection.rate_limiting_dependencies import (
    RateLimitingComponents,
    build_components,
)


def create_application(
    components: Optional[RateLimitingComponents] = None,
    settings: Settings = default_settings,
    **overrides,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        components: Pre-built rate limiting components. When omitted they are
            built from ``settings``; keyword ``overrides`` (``rule_repository``,
            ``log_repository``, ``audit_sinks``, ``state_store``, ``clock``) are
            passed through to the builder.
        settings: Settings used to build components, drive startup and shutdown,
            and read by request-time dependencies through ``app.state.settings``.

    Returns:
        FastAPI: The configured FastAPI application instance
    """
    if components is None:
        components = build_components(settings, **overrides)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description="API call logging with per-caller sliding-window rate limiting.",
        debug=settings.DEBUG,
        lifespan=create_lifespan_manager(settings),
        default_response_class=JSONResponse,
    )

    app.state.settings = settings
    app.state.rule_repository = components.rule_repository
    app.state.log_repository = components.log_repository
    app.state.state_store = components.state_store
    app.state.decision_service = components.decision_service
    app.state.seeding_service = components.seeding_service
    app.state.audit_service = components.audit_service

    register_exception_handlers(app)

    app.include_router(api_router, prefix="/api/v1")

    return app
