import os
import sys
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

# Adjust sys.path so the src. imports resolve without an installed package
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from src.core.application import create_application
from src.core.config.settings import settings
from src.domain.rate_limiting.services import RateLimitDecisionService
from src.domain.rate_limiting.state_store import CallerStateStore
from src.infrastructure.dependency_injection.rate_limiting_dependencies import build_components
from src.infrastructure.repositories.api_log_repository import InMemoryApiLogRepository
from src.infrastructure.repositories.rule_repository import InMemoryRateLimitRuleRepository

T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock returning timezone-aware UTC datetimes."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rule_repository():
    return InMemoryRateLimitRuleRepository()


@pytest.fixture
def log_repository():
    return InMemoryApiLogRepository()


@pytest.fixture
def state_store(clock):
    return CallerStateStore(clock=clock)


@pytest.fixture
def decision_service(rule_repository, state_store, clock):
    return RateLimitDecisionService(rule_repository, state_store, clock=clock)


@pytest.fixture
def app_settings(monkeypatch):
    """Global settings switched to in-process storage for the HTTP tests."""
    monkeypatch.setattr(settings, "RULE_STORAGE", "memory")
    monkeypatch.setattr(settings, "RATE_LIMIT_SEED_DEFAULT_RULES", True)
    monkeypatch.setattr(settings, "RATE_LIMIT_AUDIT_DENIED", True)
    return settings


@pytest.fixture
def components(app_settings, rule_repository, log_repository):
    return build_components(
        app_settings,
        rule_repository=rule_repository,
        log_repository=log_repository,
        audit_sinks=[log_repository],
        state_store=CallerStateStore(),
    )


@pytest.fixture
def app(components, app_settings):
    return create_application(components, settings=app_settings)


@pytest.fixture
def client(app):
    # entering the context runs the lifespan, which seeds the default rules
    with TestClient(app) as test_client:
        yield test_client
