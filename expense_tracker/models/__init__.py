"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker.
All data flowing through the system must conform to these schemas.
"""

from expense_tracker.models.ledger import (
    AlertLevel,
    AlertRecord,
    CategorySummary,
    CycleSummary,
    Expense,
    ExpenseDraft,
    ExpenseReceipt,
    SalaryCycle,
    UserAccount,
    ValidationIssue,
    ValidationResult,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "AlertLevel",
    "AlertRecord",
    "CategorySummary",
    "CycleSummary",
    "Expense",
    "ExpenseDraft",
    "ExpenseReceipt",
    "SalaryCycle",
    "UserAccount",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
