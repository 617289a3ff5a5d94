"""Main application settings and configuration management.

This module composes all the application settings from the different modules
(app, database, rate limiting) into a single, accessible `Settings` class.

It loads settings from environment variables and .env files, validates them,
and provides a single `settings` object for use throughout the application.
"""

import logging
import os
from pathlib import Path

from pydantic_settings import SettingsConfigDict

from .app import AppSettings
from .database import DatabaseSettings
from .rate_limiting import RateLimitSettings

logger = logging.getLogger(__name__)


class Settings(AppSettings, DatabaseSettings, RateLimitSettings):
    """The main settings class that aggregates all application configurations.

    Usage:
        - Access settings via the singleton instance `settings` throughout the application.
        - Tests override individual attributes with ``monkeypatch.setattr``.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="allow"
    )


def create_settings() -> Settings:
    """Create settings instance with environment-specific configuration.

    Returns:
        Settings: Configured settings instance
    """
    env = os.getenv("APP_ENV", "development")

    env_files = {
        "development": ".env",
        "test": ".env.test",
        "staging": ".env.staging",
        "production": ".env.production",
    }
    env_file = env_files.get(env, ".env")

    if env != "development" and Path(env_file).exists():
        logger.info(f"Loading environment configuration from {env_file}")
        return Settings(_env_file=env_file)
    if not Path(".env").exists():
        logger.debug(f"No .env file found, using environment variables only (environment: {env})")
    return Settings()


# Create a singleton instance of the settings to be used across the application.
settings = create_settings()
