"""
Expense Ledger

Records and removes expenses.

CRITICAL: An expense is stamped with the user's current cycle at insert
time and that binding never changes. The stamp, the recomputed summary and
the alert check all happen under the user's lock, so two concurrent
expenses of the same user see each other's totals and cannot both claim
the same threshold.
"""

from typing import Optional
from uuid import UUID

import structlog

from expense_tracker.accounting import AccountingEngine
from expense_tracker.alerts import ThresholdAlerter
from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.exceptions import ForbiddenError, ValidationError
from expense_tracker.locks import UserLockRegistry
from expense_tracker.models.ledger import (
    AlertRecord,
    Expense,
    ExpenseDraft,
    ExpenseReceipt,
)
from expense_tracker.services.storage import (
    ExpenseStorageInterface,
    NotFoundError,
    StorageError,
    UserStorageInterface,
)
from expense_tracker.validation import ExpenseValidator


logger = structlog.get_logger(__name__)


class ExpenseLedger:
    """
    Append and remove expenses, keeping the cycle binding intact.

    Dispatching the push for a returned alert is the caller's job, after
    append() has returned and the lock is released.
    """

    def __init__(
        self,
        user_storage: UserStorageInterface,
        expense_storage: ExpenseStorageInterface,
        accounting: AccountingEngine,
        alerter: ThresholdAlerter,
        locks: UserLockRegistry,
        validator: Optional[ExpenseValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._users = user_storage
        self._expenses = expense_storage
        self._accounting = accounting
        self._alerter = alerter
        self._locks = locks
        self._validator = validator or ExpenseValidator()
        self._audit_logger = audit_logger

    async def append(
        self,
        draft: ExpenseDraft,
        correlation_id: Optional[UUID] = None,
    ) -> ExpenseReceipt:
        """
        Validate and record an expense in the user's current cycle.

        Returns:
            ExpenseReceipt with the stored expense, the summary of its
            cycle including it, and the alert it triggered (if any)

        Raises:
            ValidationError: Before any write, if the draft is invalid
            NotFoundError: Unknown user, or user has no current cycle
            StorageError: If the expense could not be stored
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            result = self._validator.require_valid(draft)
        except ValidationError as e:
            if self._audit_logger:
                await self._audit_logger.log_expense_rejected(
                    user_id=draft.user_id,
                    issues=[issue.model_dump() for issue in e.issues],
                    correlation_id=correlation_id,
                )
            raise

        for warning in result.warnings:
            logger.info("expense_warning", user_id=draft.user_id, warning=warning)

        async with self._locks.hold(draft.user_id):
            expense = await self._expenses.append_expense(
                user_id=draft.user_id,
                amount=draft.amount,
                category=draft.category,
                expense_date=draft.expense_date,
                budget_type=draft.budget_type,
                note=draft.note,
            )

            if self._audit_logger:
                await self._audit_logger.log_expense_recorded(
                    expense_id=expense.id,
                    cycle_id=expense.cycle_id,
                    amount=str(expense.amount),
                    correlation_id=correlation_id,
                )

            summary = await self._accounting.summarize_cycle(
                expense.user_id,
                expense.cycle_id,
            )

            alert: Optional[AlertRecord] = None
            try:
                alert = await self._alerter.evaluate_and_record(summary, correlation_id)
            except StorageError as e:
                # The expense is stored; a missed alert must not undo it
                logger.error(
                    "alert_recording_failed",
                    user_id=expense.user_id,
                    cycle_id=expense.cycle_id,
                    error=str(e),
                )
                if self._audit_logger:
                    await self._audit_logger.log_error(
                        error_type="alert_recording_failed",
                        error_message=str(e),
                        details={"expense_id": expense.id, "cycle_id": expense.cycle_id},
                        correlation_id=correlation_id,
                    )

        return ExpenseReceipt(expense=expense, summary=summary, alert=alert)

    async def remove(
        self,
        expense_id: int,
        requester_id: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Delete one expense.

        Raises:
            NotFoundError: If the expense doesn't exist
            ForbiddenError: If requester_id is given and doesn't own it
        """
        correlation_id = correlation_id or create_correlation_id()

        expense = await self._expenses.get_expense(expense_id)
        if expense is None:
            raise NotFoundError(f"Expense not found: {expense_id}")

        if requester_id is not None and requester_id != expense.user_id:
            raise ForbiddenError(
                f"User {requester_id} cannot delete expense {expense_id}"
            )

        async with self._locks.hold(expense.user_id):
            if not await self._expenses.delete_expense(expense_id):
                raise NotFoundError(f"Expense not found: {expense_id}")

        if self._audit_logger:
            await self._audit_logger.log_expense_deleted(
                expense_id=expense.id,
                cycle_id=expense.cycle_id,
                correlation_id=correlation_id,
            )

        return expense

    async def list_current(self, user_id: int) -> list[Expense]:
        """
        Expenses in the user's current cycle, newest expense date first.

        Raises:
            NotFoundError: Unknown user, or user has no current cycle
        """
        user = await self._users.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}")
        if user.current_cycle_id is None:
            raise NotFoundError(f"User {user_id} has no current cycle")
        return await self._expenses.list_expenses_for_cycle(user.current_cycle_id)

    async def list_all(self, user_id: int) -> list[Expense]:
        """Every expense of the user across all cycles."""
        user = await self._users.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}")
        return await self._expenses.list_expenses_for_user(user_id)
