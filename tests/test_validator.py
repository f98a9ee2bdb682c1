"""
Tests for expense draft validation.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from expense_tracker.exceptions import ValidationError
from expense_tracker.models.ledger import ExpenseDraft
from expense_tracker.validation import ExpenseValidator


@pytest.fixture
def validator():
    return ExpenseValidator()


def _draft(**overrides):
    values = {
        "user_id": 1,
        "amount": Decimal("120.50"),
        "category": "Groceries",
        "budget_type": "Needs",
        "expense_date": date(2024, 5, 1),
    }
    values.update(overrides)
    return ExpenseDraft(**values)


class TestRequiredFields:
    """Stage 1: errors that block the write."""

    def test_valid_draft(self, validator):
        result = validator.validate(_draft())
        assert result.is_valid
        assert result.issues == []

    def test_empty_draft_reports_everything(self, validator):
        """Test that all missing fields are reported at once."""
        result = validator.validate(ExpenseDraft())

        assert not result.is_valid
        assert {i.field for i in result.issues} == {
            "user_id",
            "amount",
            "expense_date",
            "category",
        }
        assert all(i.issue_type == "missing" for i in result.issues)

    @pytest.mark.parametrize("amount", ["0", "-10", "NaN", "Infinity"])
    def test_non_positive_or_non_finite_amount(self, validator, amount):
        result = validator.validate(_draft(amount=Decimal(amount)))

        assert result.has_errors
        assert result.issues[0].field == "amount"
        assert result.issues[0].issue_type == "invalid_value"

    def test_more_than_two_decimals(self, validator):
        result = validator.validate(_draft(amount=Decimal("10.005")))

        assert result.has_errors
        assert "two decimal places" in result.issues[0].message

    @pytest.mark.parametrize("amount", ["1e30", "10000000000", "123456789012345678901234567890.5"])
    def test_amount_beyond_money_column(self, validator, amount):
        """Test that oversized amounts are an error, not an arithmetic crash."""
        result = validator.validate(_draft(amount=Decimal(amount)))

        assert result.has_errors
        assert [i.field for i in result.issues] == ["amount"]
        assert "at most" in result.issues[0].message

    def test_largest_storable_amount(self, validator):
        result = validator.validate(_draft(amount=Decimal("9999999999.99")))

        assert result.is_valid
        assert "unusually high" in result.warnings[0]

    def test_many_digits_below_limit(self, validator):
        """Test a long fraction is reported as too precise."""
        result = validator.validate(_draft(amount=Decimal("1.0000000000000000000000000000001")))

        assert "two decimal places" in result.issues[0].message

    def test_trailing_zero_decimals_are_fine(self, validator):
        assert validator.validate(_draft(amount=Decimal("10.500"))).is_valid

    def test_blank_category(self, validator):
        """Test that whitespace-only category counts as missing."""
        result = validator.validate(_draft(category="   "))

        assert [i.field for i in result.issues] == ["category"]

    def test_budget_type_optional(self, validator):
        assert validator.validate(_draft(budget_type=None)).is_valid


class TestSanityChecks:
    """Stage 2: warnings that don't block."""

    def test_huge_amount_warns(self, validator):
        result = validator.validate(_draft(amount=Decimal("50000000")))

        assert result.is_valid
        assert len(result.warnings) == 1
        assert "unusually high" in result.warnings[0]

    def test_future_date_warns(self, validator):
        result = validator.validate(_draft(expense_date=date.today() + timedelta(days=30)))

        assert result.is_valid
        assert result.issues[0].issue_type == "future_date"

    def test_near_future_within_tolerance(self, validator):
        result = validator.validate(_draft(expense_date=date.today() + timedelta(days=1)))
        assert result.warnings == []

    def test_sanity_skipped_when_errors(self, validator):
        """Test that stage 2 doesn't run on a broken draft."""
        result = validator.validate(_draft(
            amount=Decimal("50000000"),
            category="",
        ))

        assert [i.severity for i in result.issues] == ["error"]


class TestRequireValid:
    def test_raises_with_issues(self, validator):
        with pytest.raises(ValidationError) as excinfo:
            validator.require_valid(_draft(amount=None, category=None))

        assert len(excinfo.value.issues) == 2
        assert "Amount is required" in str(excinfo.value)

    def test_returns_result_with_warnings(self, validator):
        result = validator.require_valid(_draft(amount=Decimal("50000000")))
        assert result.warnings
