"""Unit tests for component wiring."""

import pytest

from src.core.config.settings import Settings
from src.domain.rate_limiting.state_store import CallerStateStore
from src.infrastructure.dependency_injection.rate_limiting_dependencies import (
    build_audit_sinks,
    build_components,
    build_log_repository,
    build_rule_repository,
)
from src.infrastructure.repositories.api_log_repository import InMemoryApiLogRepository
from src.infrastructure.repositories.rule_repository import InMemoryRateLimitRuleRepository
from src.infrastructure.services.audit_sinks import ConsoleAuditSink, FileAuditSink


@pytest.fixture
def memory_settings(tmp_path):
    return Settings(
        RULE_STORAGE="memory",
        AUDIT_SINKS="console, file, database",
        AUDIT_LOG_DIR=str(tmp_path),
        RATE_LIMIT_DEFAULT_BLOCK_SECONDS=45,
        RATE_LIMIT_WINDOW_SECONDS=30,
        RATE_LIMIT_TEST_IDENTITY="qa-bot",
    )


def test_memory_storage_builds_in_memory_repositories(memory_settings):
    assert isinstance(build_rule_repository(memory_settings), InMemoryRateLimitRuleRepository)
    assert isinstance(build_log_repository(memory_settings), InMemoryApiLogRepository)


def test_audit_sinks_follow_settings(memory_settings, tmp_path):
    log_repository = InMemoryApiLogRepository()

    sinks = build_audit_sinks(log_repository, memory_settings)

    assert [type(s) for s in sinks] == [ConsoleAuditSink, FileAuditSink, InMemoryApiLogRepository]
    assert sinks[1].path == tmp_path / "ApiLogs.txt"
    assert sinks[2] is log_repository


def test_unknown_audit_sink_rejected():
    with pytest.raises(ValueError, match="Unknown audit sinks"):
        Settings(AUDIT_SINKS="console,carrier-pigeon")


def test_components_use_configured_limits(memory_settings):
    components = build_components(memory_settings)

    service = components.decision_service
    assert service.block_machine.default_block_seconds == 45
    assert service.counter.window.total_seconds() == 30
    assert components.state_store.window.total_seconds() == 30
    assert components.seeding_service.test_identity == "qa-bot"
    assert len(components.audit_service.sinks) == 3


def test_provided_empty_state_store_is_kept(memory_settings):
    store = CallerStateStore()

    components = build_components(memory_settings, state_store=store)

    assert components.state_store is store
    assert components.decision_service.state_store is store
