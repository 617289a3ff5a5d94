"""Rate limit rule repository implementations.

This module provides the concrete stores behind the domain's
``RateLimitRuleRepository`` contract:

- SqlRateLimitRuleRepository: rules kept in the ``rate_limit_rules`` table,
  accessed through SQLAlchemy async sessions
- InMemoryRateLimitRuleRepository: process-local rules for tests and
  single-worker deployments

Both return rules in insertion order so that rule matching, which keeps the
earliest of equally specific rules, is deterministic.
"""

import asyncio
from typing import Callable, Iterable, List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.core.exceptions import RuleRepositoryError
from src.domain.rate_limiting.entities import RateLimitRule
from src.domain.rate_limiting.repositories import RateLimitRuleRepository
from src.infrastructure.database.models import RateLimitRuleRecord

logger = get_logger(__name__)


class InMemoryRateLimitRuleRepository(RateLimitRuleRepository):
    """Process-local rule store. Rules are returned in insertion order."""

    def __init__(self, rules: Optional[Iterable[RateLimitRule]] = None):
        self._rules: List[RateLimitRule] = list(rules or [])
        self._lock = asyncio.Lock()

    async def fetch_all(self) -> Sequence[RateLimitRule]:
        return list(self._rules)

    async def create(self, rule: RateLimitRule) -> RateLimitRule:
        async with self._lock:
            self._rules.append(rule)
        logger.info("rate_limit_rule_created", rule_id=rule.rule_id, storage="memory")
        return rule

    async def delete_all(self) -> int:
        async with self._lock:
            count = len(self._rules)
            self._rules.clear()
        logger.info("rate_limit_rules_deleted", count=count, storage="memory")
        return count


class SqlRateLimitRuleRepository(RateLimitRuleRepository):
    """SQLAlchemy implementation of the rule repository.

    Transient connection failures while reading are retried a few times with a
    short backoff; any remaining database error is raised as
    ``RuleRepositoryError`` so callers never see driver exceptions.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        """Initialize repository with a session factory.

        Args:
            session_factory: Callable returning a new ``AsyncSession`` usable as
                an async context manager.
        """
        self.session_factory = session_factory

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        retry=retry_if_exception_type(OperationalError),
        reraise=True,
    )
    async def _fetch_records(self) -> List[RateLimitRuleRecord]:
        async with self.session_factory() as session:
            statement = select(RateLimitRuleRecord).order_by(
                RateLimitRuleRecord.created_at, RateLimitRuleRecord.id
            )
            result = await session.execute(statement)
            return list(result.scalars().all())

    async def fetch_all(self) -> Sequence[RateLimitRule]:
        try:
            records = await self._fetch_records()
        except SQLAlchemyError as e:
            logger.error("rate_limit_rules_fetch_failed", error=str(e))
            raise RuleRepositoryError(f"Could not read rate limit rules: {e}") from e

        rules = []
        for record in records:
            try:
                rules.append(record.to_entity())
            except ValueError as e:
                # an invalid stored rule is skipped, the rest still apply
                logger.warning("rate_limit_rule_invalid", rule_id=record.id, error=str(e))
        logger.debug("rate_limit_rules_fetched", count=len(rules))
        return rules

    async def create(self, rule: RateLimitRule) -> RateLimitRule:
        try:
            async with self.session_factory() as session:
                session.add(RateLimitRuleRecord.from_entity(rule))
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("rate_limit_rule_create_failed", rule_id=rule.rule_id, error=str(e))
            raise RuleRepositoryError(f"Could not store rate limit rule: {e}") from e
        logger.info("rate_limit_rule_created", rule_id=rule.rule_id, storage="database")
        return rule

    async def delete_all(self) -> int:
        try:
            async with self.session_factory() as session:
                result = await session.execute(delete(RateLimitRuleRecord))
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("rate_limit_rules_delete_failed", error=str(e))
            raise RuleRepositoryError(f"Could not delete rate limit rules: {e}") from e
        count = result.rowcount or 0
        logger.info("rate_limit_rules_deleted", count=count, storage="database")
        return count
