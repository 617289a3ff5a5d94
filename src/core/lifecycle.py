"""Application lifecycle management.

This module handles application startup and shutdown events: preparing rule
storage, installing the default rules and releasing database connections.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from src.core.config.settings import Settings, settings as default_settings
from src.core.exceptions import RuleRepositoryError
from src.core.logging import logger
from src.infrastructure.database.async_db import create_async_db_and_tables, dispose_engine


def create_lifespan_manager(settings: Settings = default_settings):
    """Create the application lifespan manager.

    Args:
        settings: Settings deciding table creation, seeding and engine disposal

    Returns:
        AsyncContextManager: The lifespan manager for the FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager that handles startup and shutdown events.

        A database that is unreachable at startup does not stop the service;
        the rate limiter then denies calls until rules can be read again.

        Args:
            app (FastAPI): The FastAPI application instance
        """
        # Startup
        if settings.RULE_STORAGE == "database":
            try:
                await create_async_db_and_tables()
            except (SQLAlchemyError, OSError) as e:
                logger.error("database_unavailable_on_startup", error=str(e))

        if settings.RATE_LIMIT_SEED_DEFAULT_RULES:
            try:
                await app.state.seeding_service.seed_if_empty()
            except RuleRepositoryError as e:
                logger.error("rate_limit_rule_seeding_failed", error=str(e))

        logger.info(
            "application_startup",
            env=settings.APP_ENV,
            version=settings.VERSION,
            rule_storage=settings.RULE_STORAGE,
        )

        yield

        # Shutdown
        if settings.RULE_STORAGE == "database":
            await dispose_engine()
        logger.info("application_shutdown", env=settings.APP_ENV)

    return lifespan
