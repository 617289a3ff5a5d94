"""API log repository implementations.

Each class here is both an ``AuditSink`` (entries are written after every
call) and an ``ApiLogRepository`` (entries are queried by the logs endpoint).
"""

import asyncio
from datetime import datetime
from typing import Callable, List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from src.core.exceptions import AuditSinkError, LogRepositoryError
from src.domain.rate_limiting.entities import ApiLogEntry
from src.domain.rate_limiting.repositories import ApiLogRepository, AuditSink
from src.infrastructure.database.models import ApiLogRecord

logger = get_logger(__name__)


class InMemoryApiLogRepository(AuditSink, ApiLogRepository):
    """Keeps API log entries in a list. Used by tests and RULE_STORAGE=memory."""

    name = "memory"

    def __init__(self):
        self._entries: List[ApiLogEntry] = []
        self._lock = asyncio.Lock()

    async def write(self, entry: ApiLogEntry) -> None:
        async with self._lock:
            self._entries.append(entry)

    async def get_logs_since(self, since: datetime) -> List[ApiLogEntry]:
        entries = [e for e in self._entries if e.start_time >= since]
        return sorted(entries, key=lambda e: e.start_time)

    @property
    def entries(self) -> List[ApiLogEntry]:
        return list(self._entries)


class SqlApiLogRepository(AuditSink, ApiLogRepository):
    """Stores API log entries in the ``api_logs`` table."""

    name = "database"

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    async def write(self, entry: ApiLogEntry) -> None:
        try:
            async with self.session_factory() as session:
                session.add(ApiLogRecord.from_entity(entry))
                await session.commit()
        except SQLAlchemyError as e:
            raise AuditSinkError(f"Could not store API log entry {entry.id}: {e}") from e

    async def get_logs_since(self, since: datetime) -> List[ApiLogEntry]:
        logger.debug("api_logs_fetch", since=since.isoformat())
        try:
            async with self.session_factory() as session:
                statement = (
                    select(ApiLogRecord)
                    .where(ApiLogRecord.start_time >= since)
                    .order_by(ApiLogRecord.start_time)
                )
                result = await session.execute(statement)
                records = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("api_logs_fetch_failed", error=str(e))
            raise LogRepositoryError(f"Could not read API logs: {e}") from e

        entries = [record.to_entity() for record in records]
        logger.debug("api_logs_fetched", count=len(entries))
        return entries
