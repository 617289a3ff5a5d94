"""Rate Limiting Domain Module

This module contains the domain model of the per-caller rate limiter that
guards every logged API call. It follows Domain-Driven Design principles with:

- Value Objects: Caller keys, rule types and decisions
- Entities: Rules, caller state and API log entries
- Domain Services: Rule matching, sliding-window counting, block state and orchestration
- Repositories: Contracts for rule storage and audit sinks
"""

from .entities import ApiLogEntry, CallerState, RateLimitRule
from .repositories import ApiLogRepository, AuditSink, RateLimitRuleRepository
from .services import (
    BlockStateMachine,
    RateLimitDecisionService,
    RuleMatcher,
    RuleSeedingService,
    SlidingWindowCounter,
)
from .state_store import CallerStateStore
from .value_objects import CallerKey, Decision, RuleType

__all__ = [
    "CallerKey",
    "Decision",
    "RuleType",
    "RateLimitRule",
    "CallerState",
    "ApiLogEntry",
    "RateLimitRuleRepository",
    "AuditSink",
    "ApiLogRepository",
    "CallerStateStore",
    "RuleMatcher",
    "SlidingWindowCounter",
    "BlockStateMachine",
    "RateLimitDecisionService",
    "RuleSeedingService",
]
