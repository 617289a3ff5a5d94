"""
Asynchronous Database Utilities Module

This module provides asynchronous database utilities using SQLAlchemy's asyncio support.
The rule and API log repositories use it for all table access.

The engine is created on first use so that importing the application (for example in
tests that run entirely on in-memory repositories) never needs a reachable database.

**Security Note**: Avoid logging the connection URL; it embeds credentials.

Key Components:
    - get_engine: The asynchronous SQLAlchemy engine, created lazily.
    - get_session_factory: A factory for creating asynchronous database sessions.
    - create_async_db_and_tables: Utility to create tables using the async engine.
    - dispose_engine: Closes pooled connections on shutdown.
"""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from structlog import get_logger

from src.core.config.settings import settings

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    """Create the process-wide async engine from ``settings.DATABASE_URL``."""
    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DATABASE_ECHO,
        future=True,
        pool_pre_ping=True,
    )


@lru_cache(maxsize=1)
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=get_engine(), class_=AsyncSession, expire_on_commit=False)


async def create_async_db_and_tables() -> None:  # noqa: D401
    """
    Create the rule and API log tables if they do not exist.
    """
    # Import for side effect: registers the tables on SQLModel.metadata
    from src.infrastructure.database import models  # noqa: F401

    logger.info("Creating async database tables")
    async with get_engine().begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Async database tables created", tables=list(SQLModel.metadata.tables.keys()))


async def dispose_engine() -> None:
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
        logger.info("Async database engine disposed")
