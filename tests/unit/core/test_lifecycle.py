"""Unit tests for application startup and shutdown."""

from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from src.core.application import create_application
from src.core.config.settings import settings


def test_database_storage_creates_tables_and_disposes_engine(components, monkeypatch):
    # Arrange
    monkeypatch.setattr(settings, "RULE_STORAGE", "database")
    create_tables = AsyncMock()
    dispose = AsyncMock()
    monkeypatch.setattr("src.core.lifecycle.create_async_db_and_tables", create_tables)
    monkeypatch.setattr("src.core.lifecycle.dispose_engine", dispose)

    # Act
    with TestClient(create_application(components, settings=settings)):
        pass

    # Assert
    create_tables.assert_awaited_once()
    dispose.assert_awaited_once()


def test_unreachable_database_does_not_stop_startup(components, rule_repository, monkeypatch):
    monkeypatch.setattr(settings, "RULE_STORAGE", "database")
    monkeypatch.setattr(
        "src.core.lifecycle.create_async_db_and_tables",
        AsyncMock(side_effect=ConnectionRefusedError("connection refused")),
    )
    monkeypatch.setattr("src.core.lifecycle.dispose_engine", AsyncMock())

    with TestClient(create_application(components, settings=settings)) as client:
        response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json()["services"]["rules"]["count"] == 3


def test_seeding_can_be_disabled(components, rule_repository, monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMIT_SEED_DEFAULT_RULES", False)

    with TestClient(create_application(components, settings=settings)) as client:
        body = client.get("/api/v1/health").json()

    assert body["status"] == "degraded"
    assert body["services"]["rules"]["status"] == "empty"
