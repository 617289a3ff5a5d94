"""Request and response models for the v1 API."""

from datetime import datetime
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.domain.rate_limiting.entities import ApiLogEntry, RateLimitRule
from src.domain.rate_limiting.value_objects import DEFAULT_BLOCK_SECONDS, WILDCARD, RuleType


class RateLimitRuleCreate(BaseModel):
    """Payload for creating a rate limiting rule."""

    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: str = Field(default=WILDCARD, min_length=1, max_length=255)
    ip_address: str = Field(default=WILDCARD, min_length=1, max_length=64)
    max_requests: int = Field(gt=0)
    rule_type: RuleType = RuleType.BLOCK
    block_duration_seconds: int = Field(default=DEFAULT_BLOCK_SECONDS, ge=0)

    @field_validator("rule_type", mode="before")
    @classmethod
    def parse_rule_type(cls, v: object) -> RuleType:
        return RuleType.parse(v)

    def to_entity(self) -> RateLimitRule:
        return RateLimitRule(
            user_id=self.user_id,
            ip_address=self.ip_address,
            max_requests=self.max_requests,
            rule_type=self.rule_type,
            block_duration_seconds=self.block_duration_seconds,
        )


class RateLimitRuleResponse(BaseModel):
    id: str
    user_id: str
    ip_address: str
    max_requests: int
    rule_type: RuleType
    block_duration_seconds: int

    @classmethod
    def from_entity(cls, rule: RateLimitRule) -> "RateLimitRuleResponse":
        return cls(**rule.to_dict())


class RulesDeletedResponse(BaseModel):
    deleted: int


class ApiLogResponse(BaseModel):
    id: str
    http_method: str
    path: str
    controller: str
    user_id: str
    ip_address: str
    start_time: datetime
    stop_time: datetime
    duration_ms: float
    outcome: str
    message: str

    @classmethod
    def from_entity(cls, entry: ApiLogEntry) -> "ApiLogResponse":
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
            message=entry.message,
        )


class ApiLogListResponse(BaseModel):
    since: datetime
    count: int
    logs: List[ApiLogResponse]


class HealthResponse(BaseModel):
    status: str
    env: str
    version: str
    services: Dict[str, Dict[str, object]]
    timestamp: datetime
