"""Unit tests for AuditService fan-out."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

from structlog.testing import capture_logs

from src.core.exceptions import AuditSinkError
from src.domain.rate_limiting.entities import ApiLogEntry
from src.infrastructure.repositories.api_log_repository import InMemoryApiLogRepository
from src.infrastructure.services.audit_service import AuditService

NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_entry():
    return ApiLogEntry(
        http_method="GET", path="/api/v1/rules", controller="Rules", user_id="Anonymous",
        ip_address="Unknown", start_time=NOW, stop_time=NOW, duration_ms=0.5,
    )


class TestAuditService:
    """Test cases for AuditService."""

    async def test_delivers_to_every_sink(self):
        first, second = InMemoryApiLogRepository(), InMemoryApiLogRepository()
        entry = make_entry()

        delivered = await AuditService([first, second]).record(entry)

        assert delivered == 2
        assert first.entries == [entry]
        assert second.entries == [entry]

    async def test_failing_sink_does_not_stop_the_others(self):
        # Arrange
        broken = AsyncMock()
        broken.name = "file"
        broken.write.side_effect = AuditSinkError("disk full")
        healthy = InMemoryApiLogRepository()
        service = AuditService([broken, healthy])

        # Act
        with capture_logs() as logs:
            delivered = await service.record(make_entry())

        # Assert
        assert delivered == 1
        assert len(healthy.entries) == 1
        assert logs[0]["event"] == "audit_sink_write_failed"
        assert logs[0]["sink"] == "file"

    async def test_no_sinks(self):
        assert await AuditService([]).record(make_entry()) == 0
