"""
Rate Limiting Domain Repositories

Interfaces for the collaborators the decision engine depends on. The domain
depends only on these abstractions; concrete storage lives in the
infrastructure layer.

Repositories:
- RateLimitRuleRepository: Source of the current rule set
- AuditSink: Destination for completed API log entries
- ApiLogRepository: Query access to stored API log entries
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Sequence

from .entities import ApiLogEntry, RateLimitRule


class RateLimitRuleRepository(ABC):
    """
    Repository interface for rate limiting rules.

    The decision engine reads the full rule set on every decision; it never
    assumes the set is non-empty.
    """

    @abstractmethod
    async def fetch_all(self) -> Sequence[RateLimitRule]:
        """
        Return every configured rule, in a stable order.

        Raises:
            RuleRepositoryError: When the storage cannot be read
        """

    @abstractmethod
    async def create(self, rule: RateLimitRule) -> RateLimitRule:
        """
        Persist a new rule.

        Returns:
            The stored rule
        """

    @abstractmethod
    async def delete_all(self) -> int:
        """
        Remove every rule.

        Returns:
            Number of rules removed
        """


class AuditSink(ABC):
    """Destination for completed API log entries (console, file, database)."""

    name: str = "sink"

    @abstractmethod
    async def write(self, entry: ApiLogEntry) -> None:
        """
        Store one entry.

        Raises:
            AuditSinkError: When the entry cannot be stored
        """


class ApiLogRepository(ABC):
    """Read access to stored API log entries."""

    @abstractmethod
    async def get_logs_since(self, since: datetime) -> List[ApiLogEntry]:
        """
        Return entries whose start time is at or after ``since``, oldest first.
        """
