"""
Application-specific settings.
"""
from pydantic import Field
from pydantic_settings import BaseSettings


class AppSettings(BaseSettings):
    """
    Defines application-wide settings like project name, debug mode and logging.

    Performance Note:
        - LOG_JSON should stay enabled in production so log shippers can parse
          the audit and rate limiting events without regex.
    """
    PROJECT_NAME: str = "api-logger"
    VERSION: str = "0.1.0"
    APP_ENV: str = "development"
    DEBUG: bool = False

    API_HOST: str = "0.0.0.0"
    API_PORT: int = Field(ge=1, le=65535, default=8000)

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
