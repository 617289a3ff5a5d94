"""SQLModel table definitions for rate limiting rules and API logs.

Each row is a flat record keyed by a string id. Conversion helpers map rows to
and from the domain entities so the domain layer never sees ORM objects.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Column, Field, SQLModel

from src.domain.rate_limiting.entities import ApiLogEntry, RateLimitRule
from src.domain.rate_limiting.value_objects import WILDCARD, RuleType


def _utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes returned by drivers without tz support."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class RateLimitRuleRecord(SQLModel, table=True):
    """Persisted rate limiting rule."""

    __tablename__ = "rate_limit_rules"

    id: str = Field(primary_key=True, max_length=36)
    user_id: str = Field(default=WILDCARD, max_length=255, index=True)
    ip_address: str = Field(default=WILDCARD, max_length=64)
    max_requests: int = Field(gt=0)
    rule_type: str = Field(default=RuleType.BLOCK.value, max_length=16)
    block_duration_seconds: int = Field(default=20, ge=0)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    @classmethod
    def from_entity(cls, rule: RateLimitRule) -> "RateLimitRuleRecord":
        return cls(
            id=rule.rule_id,
            user_id=rule.user_id,
            ip_address=rule.ip_address,
            max_requests=rule.max_requests,
            rule_type=rule.rule_type.value,
            block_duration_seconds=rule.block_duration_seconds,
        )

    def to_entity(self) -> RateLimitRule:
        return RateLimitRule(
            rule_id=self.id,
            user_id=self.user_id,
            ip_address=self.ip_address,
            max_requests=self.max_requests,
            rule_type=RuleType.parse(self.rule_type),
            block_duration_seconds=self.block_duration_seconds,
        )


class ApiLogRecord(SQLModel, table=True):
    """Persisted API log entry."""

    __tablename__ = "api_logs"

    id: str = Field(primary_key=True, max_length=36)
    http_method: str = Field(max_length=16)
    path: str = Field(max_length=2048)
    controller: str = Field(max_length=255)
    user_id: str = Field(max_length=255, index=True)
    ip_address: str = Field(max_length=64)
    start_time: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False, index=True))
    stop_time: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    duration_ms: float
    outcome: str = Field(default="allowed", max_length=16)
    message: Optional[str] = Field(default=None, max_length=512)

    @classmethod
    def from_entity(cls, entry: ApiLogEntry) -> "ApiLogRecord":
        return cls(
            id=entry.id,
            http_method=entry.http_method,
            path=entry.path,
            controller=entry.controller,
            user_id=entry.user_id,
            ip_address=entry.ip_address,
            start_time=entry.start_time,
            stop_time=entry.stop_time,
            duration_ms=entry.duration_ms,
            outcome=entry.outcome,
            message=entry.message or None,
        )

    def to_entity(self) -> ApiLogEntry:
        return ApiLogEntry(
            id=self.id,
            http_method=self.http_method,
            path=self.path,
            controller=self.controller,
            user_id=self.user_id,
            ip_address=self.ip_address,
            start_time=_utc(self.start_time),
            stop_time=_utc(self.stop_time),
            duration_ms=self.duration_ms,
            outcome=self.outcome,
            message=self.message or "",
        )
