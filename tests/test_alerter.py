"""
Tests for the threshold alerter.
"""

import pytest
from decimal import Decimal

from expense_tracker.alerts import (
    ThresholdAlerter,
    build_alert_message,
    evaluate_alert_level,
)
from expense_tracker.models.audit import AuditEventType
from expense_tracker.models.ledger import AlertLevel, CycleSummary
from expense_tracker.services.storage import InMemoryStorage, StorageError


def _summary(cycle_id: int, spent: str, salary: str = "1000", user_id: int = 1) -> CycleSummary:
    spent_d, salary_d = Decimal(spent), Decimal(salary)
    return CycleSummary(
        user_id=user_id,
        cycle_id=cycle_id,
        salary=salary_d,
        spent=spent_d,
        remaining=salary_d - spent_d,
    )


class TestEvaluateAlertLevel:
    """Tests for the pure level function."""

    @pytest.mark.parametrize(
        "spent, expected",
        [
            ("0", AlertLevel.NONE),
            ("250", AlertLevel.NONE),
            ("299.99", AlertLevel.NONE),
            ("300", AlertLevel.THIRTY),
            ("400", AlertLevel.THIRTY),
            ("500", AlertLevel.FIFTY),
            ("850", AlertLevel.EIGHTY),
            ("950", AlertLevel.EIGHTY),
            ("990", AlertLevel.EIGHTY),
            ("1000", AlertLevel.FULL),
            ("1010", AlertLevel.FULL),
        ],
    )
    def test_highest_threshold_wins(self, spent, expected):
        """Test the descending check: first match is the answer."""
        assert evaluate_alert_level(Decimal(spent), Decimal("1000")) == expected

    def test_zero_salary_never_alerts(self):
        """Test that an undefined ratio produces no alert."""
        assert evaluate_alert_level(Decimal("50"), Decimal("0")) == AlertLevel.NONE

    def test_monotonic_in_spend(self):
        """Test that more spending never lowers the level."""
        previous = AlertLevel.NONE
        for spent in range(0, 1500, 25):
            level = evaluate_alert_level(Decimal(spent), Decimal("1000"))
            assert level >= previous
            previous = level


class TestBuildAlertMessage:
    """Tests for alert text."""

    def test_body_names_the_level(self):
        """Test the message body."""
        title, body = build_alert_message(AlertLevel.EIGHTY)
        assert "80%" in title
        assert body == "You have spent 80% of your salary. Please check your expenses."

    def test_titles_differ_per_level(self):
        """Test that each level has its own title."""
        titles = {build_alert_message(level)[0] for level in AlertLevel.descending()}
        assert len(titles) == 4


class FailingWatermarkStorage(InMemoryStorage):
    """Storage whose watermark write always fails."""

    async def set_alert_watermark(self, cycle_id, level):
        raise StorageError("watermark table locked")


class TestThresholdAlerter:
    """Tests for watermark-guarded alert recording."""

    async def test_records_once_per_level(self):
        """Test that the same level doesn't fire twice in a cycle."""
        storage = InMemoryStorage()
        alerter = ThresholdAlerter(storage, storage)

        first = await alerter.evaluate_and_record(_summary(1, "820"))
        second = await alerter.evaluate_and_record(_summary(1, "850"))

        assert first is not None
        assert first.level == AlertLevel.EIGHTY
        assert first.cycle_id == 1
        assert second is None
        assert await storage.get_alert_watermark(1) == AlertLevel.EIGHTY
        assert len(await storage.list_alerts(1)) == 1

    async def test_lower_level_never_follows_higher(self):
        """Test that dropping back (e.g. after a delete) stays quiet."""
        storage = InMemoryStorage()
        alerter = ThresholdAlerter(storage, storage)

        await alerter.evaluate_and_record(_summary(1, "900"))
        assert await alerter.evaluate_and_record(_summary(1, "400")) is None

    async def test_escalation_records_each_new_level(self):
        """Test 30% → 80% → 100% in one cycle."""
        storage = InMemoryStorage()
        alerter = ThresholdAlerter(storage, storage)

        levels = []
        for spent in ("400", "850", "1050"):
            record = await alerter.evaluate_and_record(_summary(1, spent))
            levels.append(record.level)

        assert levels == [AlertLevel.THIRTY, AlertLevel.EIGHTY, AlertLevel.FULL]

    async def test_watermark_is_per_cycle(self):
        """Test that a new cycle alerts again from scratch."""
        storage = InMemoryStorage()
        alerter = ThresholdAlerter(storage, storage)

        await alerter.evaluate_and_record(_summary(1, "850"))
        record = await alerter.evaluate_and_record(_summary(2, "850"))

        assert record is not None
        assert record.cycle_id == 2

    async def test_nothing_recorded_below_first_threshold(self):
        """Test that no alert and no watermark exist below 30%."""
        storage = InMemoryStorage()
        alerter = ThresholdAlerter(storage, storage)

        assert await alerter.evaluate_and_record(_summary(1, "100")) is None
        assert await storage.get_alert_watermark(1) == AlertLevel.NONE

    async def test_watermark_failure_still_returns_record(self):
        """Test at-least-once: record kept, next crossing may repeat it."""
        storage = FailingWatermarkStorage()
        alerter = ThresholdAlerter(storage, storage)

        first = await alerter.evaluate_and_record(_summary(1, "850"))
        again = await alerter.evaluate_and_record(_summary(1, "860"))

        assert first is not None
        assert again is not None
        assert len(await storage.list_alerts(1)) == 2

    async def test_suppression_is_audited(self, components):
        """Test that suppressed alerts leave a trace."""
        alerter = components.alerter

        await alerter.evaluate_and_record(_summary(1, "850"))
        await alerter.evaluate_and_record(_summary(1, "870"))

        events = await components.storage.get_recent_events()
        types = [e.event_type for e in events]
        assert AuditEventType.ALERT_EMITTED in types
        assert AuditEventType.ALERT_SUPPRESSED in types
