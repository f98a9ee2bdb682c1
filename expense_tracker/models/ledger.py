"""
Core Data Models for Expense Tracker

These models define the schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Keep money as Decimal end to end

DESIGN DECISION: A SalaryCycle is frozen. Its salary is a snapshot taken
when the cycle was opened; later changes to the user's baseline salary only
affect cycles opened afterwards.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class AlertLevel(str, Enum):
    """
    Spend-to-salary thresholds that trigger a budget alert.

    Levels are ordered by their threshold, NONE being the lowest.
    """
    NONE = "none"
    THIRTY = "30%"
    FIFTY = "50%"
    EIGHTY = "80%"
    FULL = "100%"

    @property
    def threshold(self) -> Decimal:
        """Minimum percentage of salary spent for this level."""
        return _THRESHOLDS[self]

    @classmethod
    def descending(cls) -> list["AlertLevel"]:
        """Alert levels from highest to lowest, NONE excluded."""
        return [cls.FULL, cls.EIGHTY, cls.FIFTY, cls.THIRTY]

    def __gt__(self, other):
        if not isinstance(other, AlertLevel):
            return NotImplemented
        return self.threshold > other.threshold

    def __ge__(self, other):
        if not isinstance(other, AlertLevel):
            return NotImplemented
        return self.threshold >= other.threshold

    def __lt__(self, other):
        if not isinstance(other, AlertLevel):
            return NotImplemented
        return self.threshold < other.threshold

    def __le__(self, other):
        if not isinstance(other, AlertLevel):
            return NotImplemented
        return self.threshold <= other.threshold


_THRESHOLDS = {
    AlertLevel.NONE: Decimal("0"),
    AlertLevel.THIRTY: Decimal("30"),
    AlertLevel.FIFTY: Decimal("50"),
    AlertLevel.EIGHTY: Decimal("80"),
    AlertLevel.FULL: Decimal("100"),
}

# Largest value a Numeric(12, 2) money column holds
MAX_MONEY = Decimal("9999999999.99")


# =============================================================================
# ACCOUNT & CYCLE MODELS
# =============================================================================

class UserAccount(BaseModel):
    """
    A registered user as seen by the accounting core.

    The account itself is owned by the auth collaborator. The core reads the
    baseline salary, the current-cycle pointer and the push token.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int
    full_name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name"
    )
    email: str = Field(
        ...,
        min_length=3,
        max_length=255,
        description="Login email, unique per user"
    )
    password_hash: str = Field(
        default="",
        repr=False,
        description="Hash produced by the auth collaborator"
    )
    salary: Decimal = Field(
        ...,
        ge=0,
        description="Baseline salary used when a new cycle is opened"
    )
    current_cycle_id: Optional[int] = Field(
        default=None,
        description="Cycle that new expenses bind to (None before the first)"
    )
    push_token: Optional[str] = Field(
        default=None,
        description="Expo push token of the user's device"
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow
    )


class SalaryCycle(BaseModel):
    """
    One accounting period with a fixed salary figure.

    CRITICAL: Cycles are never mutated. A user moves to a new cycle by
    retargeting their current-cycle pointer.
    """
    model_config = ConfigDict(frozen=True)

    id: int
    user_id: int
    salary: Decimal = Field(
        ...,
        ge=0,
        description="Salary snapshot captured when the cycle was opened"
    )
    started_at: datetime = Field(
        default_factory=datetime.utcnow
    )


# =============================================================================
# EXPENSE MODELS
# =============================================================================

class ExpenseDraft(BaseModel):
    """
    Expense as submitted by a client, before validation.

    All fields are optional here so that missing values are reported by
    the validator as issues instead of failing model construction.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: Optional[int] = None
    amount: Optional[Decimal] = None
    budget_type: Optional[str] = Field(
        default=None,
        max_length=50
    )
    category: Optional[str] = Field(
        default=None,
        max_length=100
    )
    note: Optional[str] = Field(
        default=None,
        max_length=1000
    )
    expense_date: Optional[date] = None


class Expense(BaseModel):
    """
    A recorded spend event.

    CRITICAL: cycle_id is captured at insert time and never changes,
    even after the user reloads their salary cycle.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int
    user_id: int
    cycle_id: int
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Amount spent"
    )
    budget_type: Optional[str] = None
    category: str = Field(
        ...,
        min_length=1,
        max_length=100
    )
    note: Optional[str] = None
    expense_date: date
    created_at: datetime = Field(
        default_factory=datetime.utcnow
    )


# =============================================================================
# ACCOUNTING MODELS
# =============================================================================

class CycleSummary(BaseModel):
    """
    Spend position of one cycle.

    percent_used is None when the cycle salary is zero: the ratio is
    undefined and must not leak out as Infinity or NaN.
    """

    user_id: int
    cycle_id: int
    salary: Decimal
    spent: Decimal
    remaining: Decimal
    percent_used: Optional[Decimal] = None

    @property
    def percent_used_display(self) -> Optional[str]:
        """Percentage formatted with two decimals, e.g. '85.00'."""
        if self.percent_used is None:
            return None
        return f"{self.percent_used:.2f}"


class CategorySummary(BaseModel):
    """Totals per category for one cycle."""

    user_id: int
    cycle_id: int
    totals: dict[str, Decimal] = Field(default_factory=dict)


# =============================================================================
# ALERT MODELS
# =============================================================================

class AlertRecord(BaseModel):
    """
    A notification stored for a user.

    Append-only. Records produced by the alerter carry the cycle and level
    they were raised for; manually added notifications carry neither.
    """

    id: int
    user_id: int
    title: Optional[str] = Field(
        default=None,
        max_length=200
    )
    message: str = Field(
        ...,
        min_length=1
    )
    cycle_id: Optional[int] = None
    level: Optional[AlertLevel] = None
    created_at: datetime = Field(
        default_factory=datetime.utcnow
    )


class ExpenseReceipt(BaseModel):
    """What the ledger returns after recording an expense."""

    expense: Expense
    summary: CycleSummary
    alert: Optional[AlertRecord] = None


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Result of validating an expense draft."""

    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    # Warnings don't block but should be shown
    warnings: list[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
