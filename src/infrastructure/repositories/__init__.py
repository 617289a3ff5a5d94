"""Repository implementations for the infrastructure layer."""

from .api_log_repository import InMemoryApiLogRepository, SqlApiLogRepository
from .rule_repository import InMemoryRateLimitRuleRepository, SqlRateLimitRuleRepository

__all__ = [
    "InMemoryApiLogRepository",
    "SqlApiLogRepository",
    "InMemoryRateLimitRuleRepository",
    "SqlRateLimitRuleRepository",
]
