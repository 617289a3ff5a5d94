"""Main application entry point for the FastAPI application.

This module serves as the central entry point for the application.
It initializes the application and creates the FastAPI instance using
the application factory pattern.
"""

import uvicorn

from src.core.application import create_application
from src.core.config.settings import settings
from src.core.initialization import initialize_application

# Initialize the application
initialize_application()

# Create the FastAPI application
app = create_application()


def run() -> None:
    uvicorn.run("src.main:app", host=settings.API_HOST, port=settings.API_PORT)


if __name__ == "__main__":
    run()
