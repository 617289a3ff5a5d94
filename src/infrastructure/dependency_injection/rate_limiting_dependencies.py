"""Dependency wiring for the rate limiter and audit pipeline.

Factories here choose concrete infrastructure from the settings and assemble
one ``RateLimitingComponents`` bundle per application. The application
factory places the bundle's members on ``app.state``; tests pass their own
in-memory collaborators instead.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Union

from structlog import get_logger

from src.core.config.settings import Settings, settings as default_settings
from src.domain.rate_limiting.repositories import ApiLogRepository, AuditSink, RateLimitRuleRepository
from src.domain.rate_limiting.services import (
    BlockStateMachine,
    RateLimitDecisionService,
    RuleSeedingService,
    SlidingWindowCounter,
)
from src.domain.rate_limiting.state_store import CallerStateStore
from src.domain.rate_limiting.value_objects import utc_now
from src.infrastructure.database.async_db import get_session_factory
from src.infrastructure.repositories.api_log_repository import (
    InMemoryApiLogRepository,
    SqlApiLogRepository,
)
from src.infrastructure.repositories.rule_repository import (
    InMemoryRateLimitRuleRepository,
    SqlRateLimitRuleRepository,
)
from src.infrastructure.services.audit_service import AuditService
from src.infrastructure.services.audit_sinks import ConsoleAuditSink, FileAuditSink

logger = get_logger(__name__)

LogStore = Union[InMemoryApiLogRepository, SqlApiLogRepository]


@dataclass
class RateLimitingComponents:
    rule_repository: RateLimitRuleRepository
    log_repository: ApiLogRepository
    state_store: CallerStateStore
    decision_service: RateLimitDecisionService
    seeding_service: RuleSeedingService
    audit_service: AuditService


def build_rule_repository(settings: Settings = default_settings) -> RateLimitRuleRepository:
    if settings.RULE_STORAGE == "memory":
        return InMemoryRateLimitRuleRepository()
    return SqlRateLimitRuleRepository(get_session_factory())


def build_log_repository(settings: Settings = default_settings) -> LogStore:
    if settings.RULE_STORAGE == "memory":
        return InMemoryApiLogRepository()
    return SqlApiLogRepository(get_session_factory())


def build_audit_sinks(log_repository: ApiLogRepository, settings: Settings = default_settings) -> List[AuditSink]:
    """Create the sinks named in ``AUDIT_SINKS``.

    The "database" sink is the log repository itself when it can store entries,
    so the logs endpoint reads back exactly what was written.
    """
    sinks: List[AuditSink] = []
    for name in settings.AUDIT_SINKS:
        if name == "console":
            sinks.append(ConsoleAuditSink())
        elif name == "file":
            sinks.append(FileAuditSink(settings.AUDIT_LOG_DIR, settings.AUDIT_LOG_FILE))
        elif name == "database" and isinstance(log_repository, AuditSink):
            sinks.append(log_repository)
    return sinks


def build_components(
    settings: Settings = default_settings,
    rule_repository: Optional[RateLimitRuleRepository] = None,
    log_repository: Optional[ApiLogRepository] = None,
    audit_sinks: Optional[List[AuditSink]] = None,
    state_store: Optional[CallerStateStore] = None,
    clock: Callable[[], datetime] = utc_now,
) -> RateLimitingComponents:
    """Assemble the rate limiting components, filling gaps from the settings."""
    if rule_repository is None:
        rule_repository = build_rule_repository(settings)
    if log_repository is None:
        log_repository = build_log_repository(settings)
    if audit_sinks is None:
        audit_sinks = build_audit_sinks(log_repository, settings)
    if state_store is None:
        state_store = CallerStateStore(window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS, clock=clock)

    decision_service = RateLimitDecisionService(
        rule_repository=rule_repository,
        state_store=state_store,
        counter=SlidingWindowCounter(settings.RATE_LIMIT_WINDOW_SECONDS),
        block_machine=BlockStateMachine(settings.RATE_LIMIT_DEFAULT_BLOCK_SECONDS),
        clock=clock,
    )
    logger.debug(
        "rate_limiting_components_built",
        rule_repository=type(rule_repository).__name__,
        log_repository=type(log_repository).__name__,
        audit_sinks=[sink.name for sink in audit_sinks],
    )
    return RateLimitingComponents(
        rule_repository=rule_repository,
        log_repository=log_repository,
        state_store=state_store,
        decision_service=decision_service,
        seeding_service=RuleSeedingService(rule_repository, settings.RATE_LIMIT_TEST_IDENTITY),
        audit_service=AuditService(audit_sinks),
    )
