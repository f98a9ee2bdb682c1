"""
Tests for the expense ledger and the expense flow.
"""

import asyncio
import pytest
from datetime import date
from decimal import Decimal

from expense_tracker.exceptions import ForbiddenError, ValidationError
from expense_tracker.models.audit import AuditEventType
from expense_tracker.models.ledger import AlertLevel, ExpenseDraft
from expense_tracker.services.storage import InMemoryStorage, NotFoundError, StorageError


def _draft(user_id, amount, category="Food", day=1, budget_type="Needs"):
    return ExpenseDraft(
        user_id=user_id,
        amount=Decimal(amount),
        category=category,
        budget_type=budget_type,
        expense_date=date(2024, 5, day),
    )


class TestAppend:
    """Tests for ExpenseLedger.append."""

    async def test_salary_scenario(self, components, register_user):
        """Test salary 1000: +400, +450, +200 with the alerts each one raises."""
        user = await register_user(salary="1000")
        ledger = components.ledger

        first = await ledger.append(_draft(user.id, "400"))
        assert first.summary.spent == Decimal("400")
        assert first.summary.percent_used_display == "40.00"
        assert first.summary.remaining == Decimal("600")
        assert first.alert.level == AlertLevel.THIRTY

        second = await ledger.append(_draft(user.id, "450"))
        assert second.summary.spent == Decimal("850")
        assert second.summary.percent_used_display == "85.00"
        assert second.summary.remaining == Decimal("150")
        assert second.alert.level == AlertLevel.EIGHTY

        third = await ledger.append(_draft(user.id, "200"))
        assert third.summary.spent == Decimal("1050")
        assert third.summary.percent_used_display == "105.00"
        assert third.summary.remaining == Decimal("-50")
        assert third.alert.level == AlertLevel.FULL

        alerts = await components.storage.list_alerts(user.id)
        assert [a.level for a in alerts] == [AlertLevel.FULL, AlertLevel.EIGHTY, AlertLevel.THIRTY]

    async def test_same_band_does_not_alert_again(self, components, register_user):
        """Test that staying inside 80%-100% emits no second 80% alert."""
        user = await register_user(salary="1000")

        await components.ledger.append(_draft(user.id, "850"))
        receipt = await components.ledger.append(_draft(user.id, "30"))

        assert receipt.summary.percent_used_display == "88.00"
        assert receipt.alert is None
        assert len(await components.storage.list_alerts(user.id)) == 1

    async def test_expense_is_stamped_with_current_cycle(self, components, register_user):
        """Test that the stored row carries the cycle it was added in."""
        user = await register_user()

        receipt = await components.ledger.append(_draft(user.id, "12.50"))

        assert receipt.expense.cycle_id == user.current_cycle_id
        assert receipt.summary.cycle_id == user.current_cycle_id
        assert receipt.expense.amount == Decimal("12.50")

    async def test_invalid_draft_writes_nothing(self, components, register_user):
        """Test that validation happens before any write."""
        user = await register_user()

        with pytest.raises(ValidationError) as excinfo:
            await components.ledger.append(
                ExpenseDraft(user_id=user.id, amount=Decimal("-5"), category="")
            )

        fields = {issue.field for issue in excinfo.value.issues}
        assert fields == {"amount", "category", "expense_date"}
        assert await components.storage.list_expenses_for_user(user.id) == []

        events = await components.storage.get_recent_events()
        assert events[0].event_type == AuditEventType.EXPENSE_REJECTED

    async def test_unknown_user(self, components):
        with pytest.raises(NotFoundError):
            await components.ledger.append(_draft(404, "10"))

    async def test_zero_salary_user_gets_no_alert(self, components, register_user):
        """Test that a zero salary yields no percent and no alert."""
        user = await register_user(salary="0")

        receipt = await components.ledger.append(_draft(user.id, "10"))

        assert receipt.summary.percent_used is None
        assert receipt.alert is None

    async def test_concurrent_appends_fire_each_level_once(self, components, register_user):
        """Test that parallel appends for one user serialize correctly."""
        user = await register_user(salary="1000")

        receipts = await asyncio.gather(
            *(components.ledger.append(_draft(user.id, "100")) for _ in range(12))
        )

        spent = sorted(r.summary.spent for r in receipts)
        assert spent == [Decimal(100 * n) for n in range(1, 13)]

        levels = sorted(
            (r.alert.level for r in receipts if r.alert is not None),
            key=lambda level: level.threshold,
        )
        assert levels == [AlertLevel.THIRTY, AlertLevel.FIFTY, AlertLevel.EIGHTY, AlertLevel.FULL]

    async def test_users_are_independent(self, components, register_user):
        """Test that one user's spending never shows up in another's cycle."""
        alice = await register_user(salary="1000")
        bob = await register_user(salary="1000")

        await asyncio.gather(
            components.ledger.append(_draft(alice.id, "900")),
            components.ledger.append(_draft(bob.id, "100")),
        )

        assert (await components.accounting.get_cycle_summary(alice.id)).spent == Decimal("900")
        assert (await components.accounting.get_cycle_summary(bob.id)).spent == Decimal("100")


class AlertlessStorage(InMemoryStorage):
    """Storage that can't record notifications."""

    async def append_alert(self, *args, **kwargs):
        raise StorageError("notifications table unavailable")


class TestAlertFailure:
    """Tests for an alert that can't be recorded."""

    async def test_append_still_succeeds(self, push_sender):
        """Test that the expense is kept and the failure audited."""
        from tenacity import wait_none
        from expense_tracker.orchestrator import create_app_components

        storage = AlertlessStorage()
        components = create_app_components(
            storage=storage,
            push_sender=push_sender,
            retarget_wait=wait_none(),
        )
        user = await components.registration.register(
            full_name="Ravi",
            email="ravi@example.com",
            password_hash="x",
            salary=Decimal("1000"),
        )

        receipt = await components.ledger.append(_draft(user.id, "900"))

        assert receipt.alert is None
        assert receipt.summary.spent == Decimal("900")
        events = await storage.get_recent_events()
        assert any(
            e.event_type == AuditEventType.SYSTEM_ERROR
            and e.details.get("expense_id") == receipt.expense.id
            for e in events
        )


class TestRemove:
    """Tests for ExpenseLedger.remove."""

    async def test_remove_keeps_other_bindings(self, components, register_user):
        """Test that deleting one expense doesn't touch the others."""
        user = await register_user()
        keep = await components.ledger.append(_draft(user.id, "100"))
        drop = await components.ledger.append(_draft(user.id, "50"))

        await components.ledger.remove(drop.expense.id)

        remaining = await components.ledger.list_current(user.id)
        assert [e.id for e in remaining] == [keep.expense.id]
        assert remaining[0].cycle_id == keep.expense.cycle_id

    async def test_remove_missing_expense(self, components):
        with pytest.raises(NotFoundError):
            await components.ledger.remove(12345)

    async def test_remove_twice(self, components, register_user):
        user = await register_user()
        receipt = await components.ledger.append(_draft(user.id, "10"))

        await components.ledger.remove(receipt.expense.id)
        with pytest.raises(NotFoundError):
            await components.ledger.remove(receipt.expense.id)

    async def test_remove_requires_owner_when_given(self, components, register_user):
        """Test the ownership check."""
        alice = await register_user()
        bob = await register_user()
        receipt = await components.ledger.append(_draft(alice.id, "10"))

        with pytest.raises(ForbiddenError):
            await components.ledger.remove(receipt.expense.id, requester_id=bob.id)

        await components.ledger.remove(receipt.expense.id, requester_id=alice.id)
        assert await components.ledger.list_current(alice.id) == []


class TestListing:
    """Tests for list_current and list_all."""

    async def test_list_current_newest_date_first(self, components, register_user):
        user = await register_user()
        for day in (3, 10, 1):
            await components.ledger.append(_draft(user.id, "10", day=day))

        expenses = await components.ledger.list_current(user.id)

        assert [e.expense_date.day for e in expenses] == [10, 3, 1]

    async def test_list_all_spans_cycles(self, components, register_user):
        """Test that list_all includes expenses from older cycles."""
        user = await register_user()
        await components.ledger.append(_draft(user.id, "10", day=1))
        await components.lifecycle.reload_cycle(user.id)
        await components.ledger.append(_draft(user.id, "20", day=2))

        assert len(await components.ledger.list_current(user.id)) == 1
        all_expenses = await components.ledger.list_all(user.id)
        assert len(all_expenses) == 2
        assert len({e.cycle_id for e in all_expenses}) == 2

    async def test_list_unknown_user(self, components):
        with pytest.raises(NotFoundError):
            await components.ledger.list_all(404)


class TestExpenseFlow:
    """Tests for recording with push dispatch."""

    async def test_alert_is_pushed(self, components, register_user, push_sender):
        user = await register_user(salary="1000", push_token="ExponentPushToken[abc]")
        push_sender.sent.clear()

        receipt = await components.expense_flow.record_expense(_draft(user.id, "500"))

        assert receipt.alert.level == AlertLevel.FIFTY
        assert push_sender.sent == [
            ("ExponentPushToken[abc]", receipt.alert.title, receipt.alert.message)
        ]

    async def test_no_push_without_alert(self, components, register_user, push_sender):
        user = await register_user(salary="1000")
        push_sender.sent.clear()

        await components.expense_flow.record_expense(_draft(user.id, "50"))

        assert push_sender.sent == []

    async def test_push_failure_does_not_fail_recording(self, components, register_user, push_sender):
        """Test that a dead device never reaches the caller."""
        user = await register_user(salary="1000")
        push_sender.fail = True

        receipt = await components.expense_flow.record_expense(_draft(user.id, "900"))

        assert receipt.alert.level == AlertLevel.EIGHTY
        events = await components.storage.get_recent_events()
        assert any(e.event_type == AuditEventType.NOTIFICATION_FAILED for e in events)


class ExplodingPushSender:
    """Sender failing with an error outside the dispatch error type."""

    async def send(self, token: str, title: str, body: str) -> None:
        raise RuntimeError("transport exploded")


class TestUnexpectedPushFailure:
    """Tests for senders that fail in ways nobody planned for."""

    async def test_record_expense_returns_receipt(self, storage):
        from tenacity import wait_none
        from expense_tracker.orchestrator import create_app_components

        components = create_app_components(
            storage=storage,
            push_sender=ExplodingPushSender(),
            retarget_wait=wait_none(),
        )
        user = await components.registration.register(
            full_name="Ravi",
            email="ravi@example.com",
            password_hash="x",
            salary=Decimal("1000"),
            push_token="ExponentPushToken[r]",
        )

        receipt = await components.expense_flow.record_expense(_draft(user.id, "900"))

        assert receipt.alert.level == AlertLevel.EIGHTY
        assert len(await components.ledger.list_current(user.id)) == 1
        failed = [
            e for e in await storage.get_recent_events()
            if e.event_type == AuditEventType.NOTIFICATION_FAILED
        ]
        assert failed[0].error_message == "transport exploded"
