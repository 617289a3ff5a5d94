"""Unit tests for the table models' entity conversion."""

from datetime import datetime, timezone

from src.domain.rate_limiting.entities import ApiLogEntry, RateLimitRule
from src.domain.rate_limiting.value_objects import RuleType
from src.infrastructure.database.models import ApiLogRecord, RateLimitRuleRecord

NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def test_rule_record_round_trip_keeps_identity():
    rule = RateLimitRule(max_requests=5, user_id="Anonymous", rule_type=RuleType.BLOCK, block_duration_seconds=30)

    record = RateLimitRuleRecord.from_entity(rule)

    assert record.rule_type == "block"
    assert record.created_at.tzinfo is not None
    assert record.to_entity() == rule


def test_log_record_stores_empty_message_as_null():
    entry = ApiLogEntry(
        http_method="GET", path="/api/v1/logs", controller="Logs", user_id="Anonymous",
        ip_address="Unknown", start_time=NOW, stop_time=NOW, duration_ms=1.0,
    )

    record = ApiLogRecord.from_entity(entry)

    assert record.message is None
    assert record.to_entity() == entry
