"""Audit service fanning API log entries out to the configured sinks."""

from typing import Iterable, List

from structlog import get_logger

from src.domain.rate_limiting.entities import ApiLogEntry
from src.domain.rate_limiting.repositories import AuditSink

logger = get_logger(__name__)


class AuditService:
    """
    Delivers each completed API log entry to every sink.

    A sink that fails is logged and skipped; the remaining sinks still receive
    the entry and the failure never reaches the HTTP response.
    """

    def __init__(self, sinks: Iterable[AuditSink]):
        self.sinks: List[AuditSink] = list(sinks)

    async def record(self, entry: ApiLogEntry) -> int:
        """
        Write ``entry`` to all sinks.

        Returns:
            Number of sinks that stored the entry
        """
        delivered = 0
        for sink in self.sinks:
            try:
                await sink.write(entry)
                delivered += 1
            except Exception as e:
                logger.error(
                    "audit_sink_write_failed",
                    sink=sink.name,
                    entry_id=entry.id,
                    error=str(e),
                )
        return delivered
