"""Unit tests for the API log repositories."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest
from sqlalchemy.exc import OperationalError

from src.core.exceptions import AuditSinkError, LogRepositoryError
from src.domain.rate_limiting.entities import ApiLogEntry
from src.infrastructure.database.models import ApiLogRecord
from src.infrastructure.repositories.api_log_repository import (
    InMemoryApiLogRepository,
    SqlApiLogRepository,
)

NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_entry(start, **overrides):
    values = dict(
        http_method="GET",
        path="/api/v1/logs",
        controller="Logs",
        user_id="Anonymous",
        ip_address="127.0.0.1",
        start_time=start,
        stop_time=start + timedelta(milliseconds=5),
        duration_ms=5.0,
    )
    values.update(overrides)
    return ApiLogEntry(**values)


def session_factory_for(session):
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=session)
    context.__aexit__ = AsyncMock(return_value=False)
    return Mock(return_value=context)


class TestInMemoryApiLogRepository:
    """Test cases for InMemoryApiLogRepository."""

    async def test_returns_entries_since_oldest_first(self):
        # Arrange
        repository = InMemoryApiLogRepository()
        recent = make_entry(NOW - timedelta(minutes=5))
        newest = make_entry(NOW)
        old = make_entry(NOW - timedelta(hours=2))
        for entry in (newest, old, recent):
            await repository.write(entry)

        # Act
        entries = await repository.get_logs_since(NOW - timedelta(minutes=60))

        # Assert
        assert entries == [recent, newest]
        assert len(repository.entries) == 3


class TestSqlApiLogRepository:
    """Test cases for SqlApiLogRepository with a mocked session."""

    async def test_write_adds_record(self):
        session = AsyncMock()
        session.add = Mock()
        repository = SqlApiLogRepository(session_factory_for(session))
        entry = make_entry(NOW, outcome="denied", message="Rate limiting rules not found")

        await repository.write(entry)

        record = session.add.call_args.args[0]
        assert isinstance(record, ApiLogRecord)
        assert record.id == entry.id
        assert record.outcome == "denied"
        session.commit.assert_awaited_once()

    async def test_write_failure_raises_sink_error(self):
        session = AsyncMock()
        session.add = Mock()
        session.commit.side_effect = OperationalError("INSERT", {}, Exception("down"))
        repository = SqlApiLogRepository(session_factory_for(session))

        with pytest.raises(AuditSinkError):
            await repository.write(make_entry(NOW))

    async def test_get_logs_since_restores_utc(self):
        session = AsyncMock()
        naive = NOW.replace(tzinfo=None)
        record = ApiLogRecord(
            id="l1", http_method="GET", path="/", controller="Logs", user_id="Anonymous",
            ip_address="Unknown", start_time=naive, stop_time=naive, duration_ms=1.5,
            outcome="allowed", message=None,
        )
        result = Mock()
        result.scalars.return_value.all.return_value = [record]
        session.execute.return_value = result
        repository = SqlApiLogRepository(session_factory_for(session))

        entries = await repository.get_logs_since(NOW - timedelta(hours=1))

        assert entries[0].start_time == NOW
        assert entries[0].message == ""

    async def test_read_failure_raises_log_repository_error(self):
        session = AsyncMock()
        session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))
        repository = SqlApiLogRepository(session_factory_for(session))

        with pytest.raises(LogRepositoryError):
            await repository.get_logs_since(NOW)
