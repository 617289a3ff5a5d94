"""Rate Limiting Domain Entities

Entities with identity that represent core business concepts in the rate limiting domain.

Entities:
- RateLimitRule: A caller scope (identity / IP, each exact or wildcard) and its policy
- CallerState: Recent request history and block expiry for one caller
- ApiLogEntry: The audit record produced for every intercepted API call
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from .value_objects import DEFAULT_BLOCK_SECONDS, WILDCARD, RuleType


def _whole_number(value: Any, name: str) -> int:
    """Convert to int, rejecting booleans and fractional numbers instead of truncating."""
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValueError(f"{name} must be a whole number")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} must be a whole number") from e


@dataclass
class RateLimitRule:
    """Entity representing a rate limiting rule.

    A rule applies to callers whose identity equals ``user_id`` (or any
    identity when it is "All") and whose IP equals ``ip_address`` (or any IP
    when it is "All").

    Business Rules:
    - max_requests must be a positive whole number; fractions are rejected, not truncated
    - block_duration_seconds cannot be negative; zero means the 20 second default
    - Allow rules bypass throttling, Block rules enforce the quota
    """

    max_requests: int
    user_id: str = WILDCARD
    ip_address: str = WILDCARD
    rule_type: RuleType = RuleType.BLOCK
    block_duration_seconds: int = DEFAULT_BLOCK_SECONDS
    rule_id: str = field(default_factory=lambda: str(uuid4()))

    def __post_init__(self):
        """Validate rule configuration at creation"""
        self.rule_type = RuleType.parse(self.rule_type)
        if not self.user_id:
            self.user_id = WILDCARD
        if not self.ip_address:
            self.ip_address = WILDCARD
        if self.max_requests is None:
            raise ValueError("max_requests must be positive")
        self.max_requests = _whole_number(self.max_requests, "max_requests")
        if self.max_requests <= 0:
            raise ValueError("max_requests must be positive")
        self.block_duration_seconds = _whole_number(self.block_duration_seconds or 0, "block_duration_seconds")
        if self.block_duration_seconds < 0:
            raise ValueError("block_duration_seconds cannot be negative")

    @property
    def is_allow(self) -> bool:
        return self.rule_type is RuleType.ALLOW

    def effective_block_seconds(self, default: int = DEFAULT_BLOCK_SECONDS) -> int:
        """Block duration actually applied; non-positive durations fall back to ``default``."""
        if self.block_duration_seconds <= 0:
            return default
        return self.block_duration_seconds

    @property
    def specificity(self) -> int:
        """Number of exact (non-wildcard) scopes: 0, 1 or 2."""
        return int(self.user_id != WILDCARD) + int(self.ip_address != WILDCARD)

    def matches(self, identity: str, ip_address: str) -> bool:
        """Check whether this rule's scope covers the given caller."""
        user_matches = self.user_id == WILDCARD or self.user_id == identity
        ip_matches = self.ip_address == WILDCARD or self.ip_address == ip_address
        return user_matches and ip_matches

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.rule_id,
            "user_id": self.user_id,
            "ip_address": self.ip_address,
            "max_requests": self.max_requests,
            "rule_type": self.rule_type.value,
            "block_duration_seconds": self.block_duration_seconds,
        }


@dataclass
class CallerState:
    """Entity holding the sliding-window history and block state of one caller.

    Timestamps are kept in arrival order. ``blocked_until`` is present only
    while a block is active.
    """

    request_timestamps: List[datetime] = field(default_factory=list)
    blocked_until: Optional[datetime] = None

    def is_blocked(self, now: datetime) -> bool:
        return self.blocked_until is not None and now < self.blocked_until

    def block_expired(self, now: datetime) -> bool:
        return self.blocked_until is not None and now >= self.blocked_until

    @property
    def request_count(self) -> int:
        return len(self.request_timestamps)

    def copy(self) -> CallerState:
        return CallerState(
            request_timestamps=list(self.request_timestamps),
            blocked_until=self.blocked_until,
        )


@dataclass
class ApiLogEntry:
    """Entity representing one completed (or rejected) API call.

    ``outcome`` is "allowed" for calls that reached the endpoint, "denied"
    for calls rejected by the rate limiter and "error" for calls whose
    endpoint raised. ``message`` carries the denial reason or the error.
    """

    http_method: str
    path: str
    controller: str
    user_id: str
    ip_address: str
    start_time: datetime
    stop_time: datetime
    duration_ms: float
    outcome: str = "allowed"
    message: str = ""
    id: str = field(default_factory=lambda: str(uuid4()))

    @property
    def was_denied(self) -> bool:
        return self.outcome == "denied"

    def to_log_line(self) -> str:
        """Render the entry as a single START/STOP text line."""
        line = (
            f"[START] {self.http_method} {self.path} | Controller: {self.controller}, "
            f"User: {self.user_id}, IP: {self.ip_address}, Time: {self.start_time.isoformat()} | "
            f"[STOP] {self.http_method} {self.path} | Controller: {self.controller}, "
            f"User: {self.user_id}, IP: {self.ip_address}, Time: {self.stop_time.isoformat()}, "
            f"Duration: {self.duration_ms} ms"
        )
        if self.was_denied:
            line += f" | [DENIED] {self.message}"
        elif self.outcome == "error":
            line += f" | [ERROR] {self.message}"
        return line + " ;"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "http_method": self.http_method,
            "path": self.path,
            "controller": self.controller,
            "user_id": self.user_id,
            "ip_address": self.ip_address,
            "start_time": self.start_time.isoformat(),
            "stop_time": self.stop_time.isoformat(),
            "duration_ms": self.duration_ms,
            "outcome": self.outcome,
            "message": self.message,
        }
