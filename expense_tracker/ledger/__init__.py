"""Expense ledger package."""

from expense_tracker.ledger.expense_ledger import ExpenseLedger

__all__ = ["ExpenseLedger"]
