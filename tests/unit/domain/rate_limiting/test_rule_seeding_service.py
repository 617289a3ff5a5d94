"""Unit tests for default rule seeding."""

from src.domain.rate_limiting.entities import RateLimitRule
from src.domain.rate_limiting.services import RuleSeedingService
from src.domain.rate_limiting.value_objects import RuleType


class TestRuleSeedingService:
    """Test cases for RuleSeedingService."""

    async def test_seeds_defaults_into_empty_repository(self, rule_repository):
        # Arrange
        service = RuleSeedingService(rule_repository, "Test person 1")

        # Act
        created = await service.seed_if_empty()

        # Assert
        rules = await rule_repository.fetch_all()
        assert created == 3
        assert [(r.user_id, r.ip_address, r.max_requests, r.rule_type) for r in rules] == [
            ("Anonymous", "All", 5, RuleType.BLOCK),
            ("Test person 1", "All", 50, RuleType.BLOCK),
            ("All", "All", 3, RuleType.ALLOW),
        ]
        assert all(r.block_duration_seconds == 20 for r in rules if r.rule_type is RuleType.BLOCK)

    async def test_existing_rules_are_kept(self, rule_repository):
        await rule_repository.create(RateLimitRule(max_requests=9))

        created = await RuleSeedingService(rule_repository, "tester").seed_if_empty()

        assert created == 0
        assert len(await rule_repository.fetch_all()) == 1

    async def test_seeding_is_idempotent(self, rule_repository):
        service = RuleSeedingService(rule_repository, "tester")
        await service.seed_if_empty()
        await service.seed_if_empty()
        assert len(await rule_repository.fetch_all()) == 3

    def test_configured_test_identity_used(self, rule_repository):
        rules = RuleSeedingService(rule_repository, "qa-bot").default_rules()
        assert rules[1].user_id == "qa-bot"
