"""
Tests for the accounting engine.
"""

import pytest
from datetime import date
from decimal import Decimal

from expense_tracker.accounting import compute_percent_used
from expense_tracker.exceptions import ZeroSalaryError
from expense_tracker.services.storage import NotFoundError


class TestComputePercentUsed:
    """Tests for the ratio helper."""

    def test_two_decimals(self):
        assert compute_percent_used(Decimal("850"), Decimal("1000")) == Decimal("85.00")

    def test_rounds_half_up(self):
        """Test that a trailing 5 rounds away from zero."""
        assert compute_percent_used(Decimal("0.125"), Decimal("1")) == Decimal("12.50")
        assert compute_percent_used(Decimal("1"), Decimal("3")) == Decimal("33.33")
        assert compute_percent_used(Decimal("2"), Decimal("3")) == Decimal("66.67")
        assert compute_percent_used(Decimal("1.005"), Decimal("100")) == Decimal("1.01")

    def test_over_budget(self):
        assert compute_percent_used(Decimal("1050"), Decimal("1000")) == Decimal("105.00")

    def test_zero_salary_raises(self):
        with pytest.raises(ZeroSalaryError):
            compute_percent_used(Decimal("10"), Decimal("0"))


class TestAccountingEngine:
    """Tests for summaries computed from stored expenses."""

    async def _add(self, components, user_id, amount, category="Food", day=1):
        await components.storage.append_expense(
            user_id=user_id,
            amount=Decimal(amount),
            category=category,
            expense_date=date(2024, 5, day),
        )

    async def test_summary_of_current_cycle(self, components, register_user):
        """Test spent, remaining and percent for the current cycle."""
        user = await register_user(salary="1000")
        await self._add(components, user.id, "400")
        await self._add(components, user.id, "450")

        summary = await components.accounting.get_cycle_summary(user.id)

        assert summary.cycle_id == user.current_cycle_id
        assert summary.salary == Decimal("1000")
        assert summary.spent == Decimal("850")
        assert summary.remaining == Decimal("150")
        assert summary.percent_used_display == "85.00"

    async def test_empty_cycle(self, components, register_user):
        """Test a fresh cycle: nothing spent."""
        user = await register_user(salary="1000")

        summary = await components.accounting.get_cycle_summary(user.id)

        assert summary.spent == Decimal("0")
        assert summary.remaining == Decimal("1000")
        assert summary.percent_used == Decimal("0.00")

    async def test_zero_salary_gives_no_percent(self, components, register_user):
        """Test that a zero-salary cycle reports percent as None."""
        user = await register_user(salary="0")
        await self._add(components, user.id, "25")

        summary = await components.accounting.get_cycle_summary(user.id)

        assert summary.percent_used is None
        assert summary.remaining == Decimal("-25")

    async def test_unknown_user(self, components):
        with pytest.raises(NotFoundError):
            await components.accounting.get_cycle_summary(999)

    async def test_user_without_cycle(self, components):
        """Test a user row whose first cycle was never opened."""
        user = await components.storage.create_user(
            full_name="No Cycle",
            email="nocycle@example.com",
            password_hash="x",
            salary=Decimal("1000"),
        )
        with pytest.raises(NotFoundError):
            await components.accounting.get_cycle_summary(user.id)

    async def test_category_summary_only_current_cycle(self, components, register_user):
        """Test totals per category ignore older cycles."""
        user = await register_user(salary="1000")
        await self._add(components, user.id, "100", category="Food")
        await components.lifecycle.reload_cycle(user.id)
        await self._add(components, user.id, "40", category="Food")
        await self._add(components, user.id, "60", category="Food")
        await self._add(components, user.id, "15", category="Travel")

        summary = await components.accounting.get_category_summary(user.id)

        assert summary.totals == {"Food": Decimal("100"), "Travel": Decimal("15")}

    async def test_summarize_old_cycle(self, components, register_user):
        """Test that an explicit older cycle can still be summarized."""
        user = await register_user(salary="1000")
        first_cycle = user.current_cycle_id
        await self._add(components, user.id, "700")
        await components.lifecycle.reload_cycle(user.id)

        summary = await components.accounting.summarize_cycle(user.id, first_cycle)

        assert summary.spent == Decimal("700")
        assert summary.percent_used_display == "70.00"

    async def test_cycle_of_another_user_is_hidden(self, components, register_user):
        """Test that one user can't read another's cycle history."""
        alice = await register_user()
        bob = await register_user()

        with pytest.raises(NotFoundError):
            await components.accounting.list_cycle_expenses(bob.id, alice.current_cycle_id)
