"""
Rate Limiting Value Objects

Immutable value objects representing core concepts in the rate limiting domain.

Value Objects:
- RuleType: Whether a matching rule bypasses or enforces throttling
- CallerKey: Deterministic identification of a caller (identity + IP)
- Decision: Outcome of a single admission check

Design Principles:
- Immutability: All value objects are immutable after creation
- Validation: Normalization applied at construction time
- Equality: Value-based equality for proper hashing and comparison
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

WILDCARD = "All"
ANONYMOUS_IDENTITY = "Anonymous"
UNKNOWN_IP = "Unknown"
LOOPBACK_IPV6 = "::1"
LOOPBACK_IPV4 = "127.0.0.1"

WINDOW_SECONDS = 60
DEFAULT_BLOCK_SECONDS = 20

RULES_NOT_FOUND_MESSAGE = "Rate limiting rules not found"
NO_MATCHING_RULE_MESSAGE = "No applicable rate limit rule found"


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def blocked_message(blocked_until: datetime) -> str:
    return f"User is temporarily blocked until {blocked_until.isoformat()}"


def quota_exceeded_message(blocked_until: datetime) -> str:
    return f"Too many requests. You are temporarily blocked until {blocked_until.isoformat()}"


class RuleType(str, Enum):
    """
    Enumeration of rule kinds.

    - ALLOW: matching callers bypass all throttling
    - BLOCK: matching callers are counted and blocked once over quota
    """
    ALLOW = "allow"
    BLOCK = "block"

    @classmethod
    def parse(cls, value: object) -> RuleType:
        """Parse a rule type case-insensitively ("Allow", "BLOCK", ...)."""
        if isinstance(value, RuleType):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            raise ValueError(f"Unsupported rule type: {value}") from e


@dataclass(frozen=True, slots=True)
class CallerKey:
    """
    Immutable value object identifying the caller whose requests are counted.

    Business Rules:
    - Missing or blank identity defaults to "Anonymous"
    - Missing or blank IP defaults to "Unknown"
    - IPv6 loopback ("::1") is treated as "127.0.0.1"
    - Keys are deterministic for the same inputs
    """
    identity: str
    ip_address: str

    @classmethod
    def from_request(cls, identity: Optional[str], ip_address: Optional[str]) -> CallerKey:
        """Build a normalized key from raw request values."""
        return cls(
            identity=normalize_identity(identity),
            ip_address=normalize_ip(ip_address),
        )

    @property
    def composite_key(self) -> str:
        return f"{self.identity}_{self.ip_address}"

    def __str__(self) -> str:
        return self.composite_key


def normalize_identity(identity: Optional[str]) -> str:
    if identity is None or not str(identity).strip():
        return ANONYMOUS_IDENTITY
    return str(identity).strip()


def normalize_ip(ip_address: Optional[str]) -> str:
    if ip_address is None or not str(ip_address).strip():
        return UNKNOWN_IP
    ip_address = str(ip_address).strip()
    if ip_address == LOOPBACK_IPV6:
        return LOOPBACK_IPV4
    return ip_address


@dataclass(frozen=True, slots=True)
class Decision:
    """
    Transient result of an admission check.

    ``message`` is empty when the request is allowed and states the reason
    otherwise. ``blocked_until`` is set only for denials caused by a block.
    """
    allowed: bool
    message: str = ""
    blocked_until: Optional[datetime] = None

    @classmethod
    def allow(cls) -> Decision:
        return cls(allowed=True)

    @classmethod
    def deny(cls, message: str, blocked_until: Optional[datetime] = None) -> Decision:
        return cls(allowed=False, message=message, blocked_until=blocked_until)

    @property
    def is_denied(self) -> bool:
        return not self.allowed

    def retry_after_seconds(self, now: datetime) -> Optional[int]:
        """Whole seconds until the block lifts, rounded up; None when not blocked."""
        if self.blocked_until is None:
            return None
        remaining = (self.blocked_until - now).total_seconds()
        if remaining <= 0:
            return 0
        whole = int(remaining)
        return whole if whole == remaining else whole + 1
