"""
Rate Limiting Domain Services

Domain services that turn the rule set and per-caller history into a single
admit/deny decision per request.

Services:
- RuleMatcher: Picks the single rule that applies to a caller
- SlidingWindowCounter: Counts requests in the trailing 60 second window
- BlockStateMachine: Moves callers between Unblocked and Blocked(until)
- RateLimitDecisionService: Main orchestrator for rate limiting decisions
- RuleSeedingService: Installs the default rule set into an empty repository

Design Principles:
- Single Responsibility: Each service has a focused purpose
- Dependency Injection: Services depend on repository abstractions and an injected store
- Lazy Expiry: Window pruning and block expiry happen at decision time, no timers
- Fail Closed: Missing or unreadable configuration denies the request
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence, Tuple

from structlog import get_logger

from .entities import CallerState, RateLimitRule
from .repositories import RateLimitRuleRepository
from .state_store import CallerStateStore
from .value_objects import (
    ANONYMOUS_IDENTITY,
    DEFAULT_BLOCK_SECONDS,
    NO_MATCHING_RULE_MESSAGE,
    RULES_NOT_FOUND_MESSAGE,
    WILDCARD,
    WINDOW_SECONDS,
    CallerKey,
    Decision,
    RuleType,
    blocked_message,
    quota_exceeded_message,
    utc_now,
)

logger = get_logger(__name__)


class RuleMatcher:
    """
    Selects the rule to enforce for a caller.

    Candidates are rules whose user scope is "All" or the caller's identity
    and whose IP scope is "All" or the caller's IP. The candidate with the
    most exact scopes wins; among equally specific candidates the one that
    appears first in the rule sequence wins, so the choice is deterministic
    for a given rule ordering.
    """

    def match(
        self, rules: Sequence[RateLimitRule], identity: str, ip_address: str
    ) -> Optional[RateLimitRule]:
        best: Optional[RateLimitRule] = None
        for rule in rules:
            if not rule.matches(identity, ip_address):
                continue
            # strict comparison keeps the earliest rule on ties
            if best is None or rule.specificity > best.specificity:
                best = rule
        return best


class SlidingWindowCounter:
    """Sliding-window admission counting over a fixed trailing window."""

    def __init__(self, window_seconds: int = WINDOW_SECONDS):
        self.window = timedelta(seconds=window_seconds)

    def prune(self, timestamps: Sequence[datetime], now: datetime) -> List[datetime]:
        """Keep only timestamps strictly younger than the window."""
        return [ts for ts in timestamps if now - ts < self.window]

    def record_and_check(
        self, state: Optional[CallerState], max_requests: int, now: datetime
    ) -> Tuple[CallerState, bool]:
        """
        Count one request at ``now``.

        The request that pushes the count to ``max_requests + 1`` is the first
        one outside the quota. Every call counts, so it must be invoked exactly
        once per request attempt. The input state is left untouched.

        Returns:
            (updated state, whether the request is within quota)
        """
        previous = state or CallerState()
        timestamps = self.prune(previous.request_timestamps, now)
        timestamps.append(now)
        new_state = CallerState(
            request_timestamps=timestamps,
            blocked_until=previous.blocked_until,
        )
        return new_state, len(timestamps) <= max_requests


class BlockStateMachine:
    """
    Tracks whether a caller is blocked.

    States are ``Unblocked`` (no ``blocked_until``) and ``Blocked(until)``.
    Expiry is checked lazily when the caller is next evaluated; leaving the
    Blocked state also drops the request history so the caller starts fresh.
    """

    def __init__(self, default_block_seconds: int = DEFAULT_BLOCK_SECONDS):
        self.default_block_seconds = default_block_seconds

    def is_blocked(self, state: Optional[CallerState], now: datetime) -> bool:
        return state is not None and state.is_blocked(now)

    def block(self, state: CallerState, rule: RateLimitRule, now: datetime) -> CallerState:
        return CallerState(
            request_timestamps=list(state.request_timestamps),
            blocked_until=now + timedelta(seconds=rule.effective_block_seconds(self.default_block_seconds)),
        )

    def release_if_expired(
        self, state: Optional[CallerState], now: datetime
    ) -> Tuple[Optional[CallerState], bool]:
        """
        Returns:
            (state to continue with, whether a block was released). A released
            caller continues with no state at all.
        """
        if state is not None and state.block_expired(now):
            return None, True
        return state, False


class RateLimitDecisionService:
    """
    Main domain service orchestrating rate limiting decisions.

    For every request it reads the rules fresh from the repository, selects
    the applicable rule, consults the caller's block state and sliding window,
    updates the caller state and returns a ``Decision``. Expected failure
    conditions (no rules, no matching rule, unreadable repository) resolve to
    a denial; nothing is raised across the public boundary.
    """

    def __init__(
        self,
        rule_repository: RateLimitRuleRepository,
        state_store: CallerStateStore,
        matcher: Optional[RuleMatcher] = None,
        counter: Optional[SlidingWindowCounter] = None,
        block_machine: Optional[BlockStateMachine] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.rule_repository = rule_repository
        self.state_store = state_store
        self.matcher = matcher or RuleMatcher()
        self.counter = counter or SlidingWindowCounter()
        self.block_machine = block_machine or BlockStateMachine()
        self.clock = clock

    async def check(
        self,
        identity: Optional[str],
        ip_address: Optional[str],
        now: Optional[datetime] = None,
    ) -> Decision:
        """
        Main entry point: fetch the current rules and decide for one request.

        Any error raised while reading rules or updating caller state is
        logged and reported as the "rules not found" denial.
        """
        now = now or self.clock()
        try:
            rules = list(await self.rule_repository.fetch_all())
        except Exception as e:
            logger.error("rate_limit_rules_unavailable", error=str(e), exc_info=True)
            return Decision.deny(RULES_NOT_FOUND_MESSAGE)

        try:
            return self.decide(rules, identity, ip_address, now)
        except Exception as e:
            logger.error("rate_limit_decision_failed", error=str(e), exc_info=True)
            return Decision.deny(RULES_NOT_FOUND_MESSAGE)

    def decide(
        self,
        rules: Sequence[RateLimitRule],
        identity: Optional[str],
        ip_address: Optional[str],
        now: Optional[datetime] = None,
    ) -> Decision:
        """
        Decide for one request against an explicit rule set.

        Steps, stopping at the first outcome:
        1. No rules at all: deny
        2. No rule matches the caller: deny
        3. Allow rule: admit without touching caller state
        4. Blocked caller: deny until the block expires, then reset history
        5. Count the request; over quota blocks the caller and denies
        """
        now = now or self.clock()
        key = CallerKey.from_request(identity, ip_address)

        if not rules:
            logger.warning("rate_limit_rules_not_found", caller=key.composite_key)
            return Decision.deny(RULES_NOT_FOUND_MESSAGE)

        rule = self.matcher.match(rules, key.identity, key.ip_address)
        if rule is None:
            logger.warning("rate_limit_rule_not_matched", caller=key.composite_key)
            return Decision.deny(NO_MATCHING_RULE_MESSAGE)

        if rule.is_allow:
            return Decision.allow()

        return self.state_store.upsert(
            key.composite_key,
            lambda state: self._apply_block_rule(key, rule, state, now),
        )

    def _apply_block_rule(
        self,
        key: CallerKey,
        rule: RateLimitRule,
        state: Optional[CallerState],
        now: datetime,
    ) -> Tuple[Optional[CallerState], Decision]:
        if self.block_machine.is_blocked(state, now):
            # blocked requests are rejected without consuming a window slot
            return state, Decision.deny(blocked_message(state.blocked_until), state.blocked_until)

        state, released = self.block_machine.release_if_expired(state, now)
        if released:
            logger.info("rate_limit_block_released", caller=key.composite_key)

        new_state, within_quota = self.counter.record_and_check(state, rule.max_requests, now)
        if within_quota:
            return new_state, Decision.allow()

        blocked = self.block_machine.block(new_state, rule, now)
        logger.warning(
            "rate_limit_exceeded",
            caller=key.composite_key,
            rule_id=rule.rule_id,
            max_requests=rule.max_requests,
            count=new_state.request_count,
            blocked_until=blocked.blocked_until.isoformat(),
        )
        return blocked, Decision.deny(quota_exceeded_message(blocked.blocked_until), blocked.blocked_until)


class RuleSeedingService:
    """Installs the default rule set when the repository holds no rules."""

    def __init__(self, rule_repository: RateLimitRuleRepository, test_identity: str):
        self.rule_repository = rule_repository
        self.test_identity = test_identity

    def default_rules(self) -> List[RateLimitRule]:
        return [
            RateLimitRule(
                user_id=ANONYMOUS_IDENTITY,
                ip_address=WILDCARD,
                max_requests=5,
                rule_type=RuleType.BLOCK,
                block_duration_seconds=20,
            ),
            RateLimitRule(
                user_id=self.test_identity,
                ip_address=WILDCARD,
                max_requests=50,
                rule_type=RuleType.BLOCK,
                block_duration_seconds=20,
            ),
            RateLimitRule(
                user_id=WILDCARD,
                ip_address=WILDCARD,
                max_requests=3,
                rule_type=RuleType.ALLOW,
            ),
        ]

    async def seed_if_empty(self) -> int:
        """Create the default rules if none exist. Returns how many were created."""
        existing = await self.rule_repository.fetch_all()
        if existing:
            logger.debug("rate_limit_rules_present", count=len(existing))
            return 0

        created = 0
        for rule in self.default_rules():
            await self.rule_repository.create(rule)
            created += 1
        logger.info("rate_limit_default_rules_seeded", count=created)
        return created
