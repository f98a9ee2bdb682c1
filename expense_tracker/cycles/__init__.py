"""Salary cycle lifecycle package."""

from expense_tracker.cycles.lifecycle import CycleLifecycleManager

__all__ = ["CycleLifecycleManager"]
