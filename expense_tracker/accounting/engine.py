"""
Accounting Engine

Derives spend figures for a cycle. Nothing here is cached or stored: every
summary is recomputed from the expenses bound to the cycle, so totals can
never drift from the ledger.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from expense_tracker.exceptions import ZeroSalaryError
from expense_tracker.models.ledger import (
    CategorySummary,
    CycleSummary,
    Expense,
    SalaryCycle,
    UserAccount,
)
from expense_tracker.services.storage import (
    CycleStorageInterface,
    ExpenseStorageInterface,
    NotFoundError,
    UserStorageInterface,
)


_HUNDRED = Decimal("100")
_CENT = Decimal("0.01")


def compute_percent_used(spent: Decimal, salary: Decimal) -> Decimal:
    """
    spent / salary * 100, rounded half-up to two decimals.

    Raises:
        ZeroSalaryError: If salary is zero or negative
    """
    if salary <= 0:
        raise ZeroSalaryError(f"Cannot compute spend ratio against salary {salary}")
    return (spent / salary * _HUNDRED).quantize(_CENT, rounding=ROUND_HALF_UP)


class AccountingEngine:
    """Computes cycle summaries from stored expenses."""

    def __init__(
        self,
        user_storage: UserStorageInterface,
        cycle_storage: CycleStorageInterface,
        expense_storage: ExpenseStorageInterface,
    ):
        self._users = user_storage
        self._cycles = cycle_storage
        self._expenses = expense_storage

    async def _require_user(self, user_id: int) -> UserAccount:
        user = await self._users.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}")
        return user

    async def _current_cycle(self, user_id: int) -> SalaryCycle:
        user = await self._require_user(user_id)
        if user.current_cycle_id is None:
            raise NotFoundError(f"User {user_id} has no current cycle")
        return await self._user_cycle(user_id, user.current_cycle_id)

    async def _user_cycle(self, user_id: int, cycle_id: int) -> SalaryCycle:
        cycle = await self._cycles.get_cycle(cycle_id)
        if cycle is None or cycle.user_id != user_id:
            raise NotFoundError(f"Cycle {cycle_id} not found for user {user_id}")
        return cycle

    async def _summarize(self, cycle: SalaryCycle) -> CycleSummary:
        spent = await self._expenses.total_for_cycle(cycle.id)

        percent_used: Optional[Decimal]
        try:
            percent_used = compute_percent_used(spent, cycle.salary)
        except ZeroSalaryError:
            percent_used = None

        return CycleSummary(
            user_id=cycle.user_id,
            cycle_id=cycle.id,
            salary=cycle.salary,
            spent=spent,
            remaining=cycle.salary - spent,
            percent_used=percent_used,
        )

    async def get_cycle_summary(self, user_id: int) -> CycleSummary:
        """
        Summary of the user's current cycle.

        Raises:
            NotFoundError: Unknown user, or no current cycle yet
        """
        cycle = await self._current_cycle(user_id)
        return await self._summarize(cycle)

    async def summarize_cycle(self, user_id: int, cycle_id: int) -> CycleSummary:
        """Summary of a specific cycle of the user, current or not."""
        cycle = await self._user_cycle(user_id, cycle_id)
        return await self._summarize(cycle)

    async def get_category_summary(self, user_id: int) -> CategorySummary:
        """Totals per category for the user's current cycle."""
        cycle = await self._current_cycle(user_id)
        totals = await self._expenses.totals_by_category(cycle.id)
        return CategorySummary(user_id=user_id, cycle_id=cycle.id, totals=totals)

    async def list_cycle_expenses(self, user_id: int, cycle_id: int) -> list[Expense]:
        """
        Expenses bound to one of the user's cycles, newest first.

        Raises:
            NotFoundError: If the cycle doesn't belong to the user
        """
        cycle = await self._user_cycle(user_id, cycle_id)
        return await self._expenses.list_expenses_for_cycle(cycle.id)
