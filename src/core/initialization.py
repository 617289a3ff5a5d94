"""Application initialization and setup.

This module handles the initialization tasks required before the application starts:
environment variable loading and logging configuration.
"""

from dotenv import load_dotenv

from src.core.config.settings import settings
from src.core.logging import configure_logging


def initialize_application() -> None:
    """Initialize the application with all necessary setup tasks.

    1. Load environment variables
    2. Configure logging
    """
    load_dotenv(override=True)

    configure_logging(log_level=settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
