"""Accounting package."""

from expense_tracker.accounting.engine import AccountingEngine, compute_percent_used

__all__ = ["AccountingEngine", "compute_percent_used"]
