"""
Two-Stage Expense Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - REQUIRED FIELDS:
- user id, amount, expense date and category must be present
- amount must be positive, fit a money column and have at most two decimals
- Any failure here is an error and blocks the write

STAGE 2 - SANITY CHECKS:
- Absurd amount detection
- Future date detection
- These only produce warnings; the expense is still recorded

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the caller can show every problem at once.
"""

from datetime import date, timedelta
from decimal import Decimal

from expense_tracker.config import get_settings
from expense_tracker.exceptions import ValidationError
from expense_tracker.models.ledger import (
    MAX_MONEY,
    ExpenseDraft,
    ValidationIssue,
    ValidationResult,
)


_CENT = Decimal("0.01")


class ExpenseValidator:
    """
    Validates an ExpenseDraft before anything is written.

    Stage 2 only runs when stage 1 found no errors.
    """

    def __init__(self):
        self._settings = get_settings().app

    def _validate_required(self, draft: ExpenseDraft) -> list[ValidationIssue]:
        """Stage 1: presence and basic value checks."""
        issues = []

        if draft.user_id is None:
            issues.append(ValidationIssue(
                field="user_id",
                issue_type="missing",
                message="User ID is required",
                severity="error",
            ))

        if draft.amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            ))
        elif not draft.amount.is_finite() or draft.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
            ))
        elif draft.amount > MAX_MONEY:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message=f"Amount can be at most {MAX_MONEY:,.2f}",
                severity="error",
            ))
        # Bounded above, so quantize stays within context precision
        elif draft.amount != draft.amount.quantize(_CENT):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount can have at most two decimal places",
                severity="error",
            ))

        if draft.expense_date is None:
            issues.append(ValidationIssue(
                field="expense_date",
                issue_type="missing",
                message="Expense date is required",
                severity="error",
            ))

        if not draft.category:
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="Category is required",
                severity="error",
            ))

        return issues

    def _validate_sanity(self, draft: ExpenseDraft) -> list[ValidationIssue]:
        """Stage 2: suspicious but acceptable values."""
        issues = []

        max_amount = Decimal(str(self._settings.max_expense_amount))
        if draft.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({draft.amount:,.2f}) seems unusually high",
                severity="warning",
            ))

        tolerance = timedelta(days=self._settings.future_date_tolerance_days)
        if draft.expense_date > date.today() + tolerance:
            issues.append(ValidationIssue(
                field="expense_date",
                issue_type="future_date",
                message=f"Expense date ({draft.expense_date}) is in the future",
                severity="warning",
            ))

        return issues

    def validate(self, draft: ExpenseDraft) -> ValidationResult:
        """
        Run both validation stages.

        Returns:
            ValidationResult with all issues found
        """
        issues = self._validate_required(draft)

        if not any(issue.severity == "error" for issue in issues):
            issues.extend(self._validate_sanity(draft))

        warnings = [issue.message for issue in issues if issue.severity == "warning"]

        return ValidationResult(
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
            warnings=warnings,
        )

    def require_valid(self, draft: ExpenseDraft) -> ValidationResult:
        """
        Validate and raise if any error-level issue was found.

        Raises:
            ValidationError: Carrying the error issues
        """
        result = self.validate(draft)
        if result.has_errors:
            errors = [issue for issue in result.issues if issue.severity == "error"]
            raise ValidationError(
                "; ".join(issue.message for issue in errors),
                issues=errors,
            )
        return result
