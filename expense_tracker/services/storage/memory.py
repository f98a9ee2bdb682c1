"""
In-Memory Storage Implementation

Implements every storage interface on plain dicts guarded by one lock.
Used by the test suite and when AppSettings.storage_backend is "memory".
Nothing survives a restart.
"""

import itertools
import threading
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from expense_tracker.models.audit import AuditEvent
from expense_tracker.models.ledger import (
    AlertLevel,
    AlertRecord,
    Expense,
    SalaryCycle,
    UserAccount,
)
from expense_tracker.services.storage.interface import (
    AlertStorageInterface,
    AuditStorageInterface,
    CycleStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    UserStorageInterface,
)


def _newest_expense_first(expense: Expense) -> tuple:
    return (expense.expense_date, expense.id)


class InMemoryStorage(
    UserStorageInterface,
    CycleStorageInterface,
    ExpenseStorageInterface,
    AlertStorageInterface,
    AuditStorageInterface,
):
    """
    Dict-backed implementation of all storage interfaces.

    Every public method takes the same re-entrant lock, which makes each
    of them atomic in the same way a single SQL transaction is.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._users: dict[int, UserAccount] = {}
        self._cycles: dict[int, SalaryCycle] = {}
        self._expenses: dict[int, Expense] = {}
        self._alerts: dict[int, AlertRecord] = {}
        self._watermarks: dict[int, AlertLevel] = {}
        self._events: list[AuditEvent] = []

        self._user_ids = itertools.count(1)
        self._cycle_ids = itertools.count(1)
        self._expense_ids = itertools.count(1)
        self._alert_ids = itertools.count(1)

    # -------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------

    def _require_user(self, user_id: int) -> UserAccount:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}")
        return user

    async def create_user(
        self,
        full_name: str,
        email: str,
        password_hash: str,
        salary: Decimal,
        push_token: Optional[str] = None,
    ) -> UserAccount:
        with self._lock:
            if any(u.email.lower() == email.lower() for u in self._users.values()):
                raise DuplicateError(f"Email already exists: {email}")
            user = UserAccount(
                id=next(self._user_ids),
                full_name=full_name,
                email=email,
                password_hash=password_hash,
                salary=salary,
                push_token=push_token,
            )
            self._users[user.id] = user
            return user

    async def get_user(self, user_id: int) -> Optional[UserAccount]:
        with self._lock:
            return self._users.get(user_id)

    async def get_user_by_email(self, email: str) -> Optional[UserAccount]:
        with self._lock:
            for user in self._users.values():
                if user.email.lower() == email.lower():
                    return user
            return None

    async def delete_user(self, user_id: int) -> bool:
        with self._lock:
            return self._users.pop(user_id, None) is not None

    async def update_salary(self, user_id: int, salary: Decimal) -> UserAccount:
        with self._lock:
            user = self._require_user(user_id).model_copy(update={"salary": salary})
            self._users[user_id] = user
            return user

    async def set_current_cycle(self, user_id: int, cycle_id: int) -> None:
        with self._lock:
            user = self._require_user(user_id)
            self._users[user_id] = user.model_copy(update={"current_cycle_id": cycle_id})

    async def set_push_token(self, user_id: int, push_token: Optional[str]) -> None:
        with self._lock:
            user = self._require_user(user_id)
            self._users[user_id] = user.model_copy(update={"push_token": push_token})

    # -------------------------------------------------------------------
    # Cycles
    # -------------------------------------------------------------------

    async def create_cycle(self, user_id: int, salary: Decimal) -> SalaryCycle:
        with self._lock:
            self._require_user(user_id)
            cycle = SalaryCycle(
                id=next(self._cycle_ids),
                user_id=user_id,
                salary=salary,
            )
            self._cycles[cycle.id] = cycle
            return cycle

    async def get_cycle(self, cycle_id: int) -> Optional[SalaryCycle]:
        with self._lock:
            return self._cycles.get(cycle_id)

    async def list_cycles(self, user_id: int) -> list[SalaryCycle]:
        with self._lock:
            cycles = [c for c in self._cycles.values() if c.user_id == user_id]
        cycles.sort(key=lambda c: (c.started_at, c.id), reverse=True)
        return cycles

    async def delete_cycles_for_user(self, user_id: int) -> int:
        with self._lock:
            doomed = [cid for cid, c in self._cycles.items() if c.user_id == user_id]
            for cycle_id in doomed:
                del self._cycles[cycle_id]
                self._watermarks.pop(cycle_id, None)
            return len(doomed)

    async def get_alert_watermark(self, cycle_id: int) -> AlertLevel:
        with self._lock:
            return self._watermarks.get(cycle_id, AlertLevel.NONE)

    async def set_alert_watermark(self, cycle_id: int, level: AlertLevel) -> None:
        with self._lock:
            if level > self._watermarks.get(cycle_id, AlertLevel.NONE):
                self._watermarks[cycle_id] = level

    # -------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------

    async def append_expense(
        self,
        user_id: int,
        amount: Decimal,
        category: str,
        expense_date: date,
        budget_type: Optional[str] = None,
        note: Optional[str] = None,
    ) -> Expense:
        with self._lock:
            user = self._require_user(user_id)
            if user.current_cycle_id is None:
                raise NotFoundError(f"User {user_id} has no current cycle")
            expense = Expense(
                id=next(self._expense_ids),
                user_id=user_id,
                cycle_id=user.current_cycle_id,
                amount=amount,
                budget_type=budget_type,
                category=category,
                note=note,
                expense_date=expense_date,
            )
            self._expenses[expense.id] = expense
            return expense

    async def get_expense(self, expense_id: int) -> Optional[Expense]:
        with self._lock:
            return self._expenses.get(expense_id)

    async def delete_expense(self, expense_id: int) -> bool:
        with self._lock:
            return self._expenses.pop(expense_id, None) is not None

    async def list_expenses_for_cycle(self, cycle_id: int) -> list[Expense]:
        with self._lock:
            expenses = [e for e in self._expenses.values() if e.cycle_id == cycle_id]
        expenses.sort(key=_newest_expense_first, reverse=True)
        return expenses

    async def list_expenses_for_user(self, user_id: int) -> list[Expense]:
        with self._lock:
            expenses = [e for e in self._expenses.values() if e.user_id == user_id]
        expenses.sort(key=_newest_expense_first, reverse=True)
        return expenses

    async def total_for_cycle(self, cycle_id: int) -> Decimal:
        with self._lock:
            return sum(
                (e.amount for e in self._expenses.values() if e.cycle_id == cycle_id),
                Decimal("0"),
            )

    async def totals_by_category(self, cycle_id: int) -> dict[str, Decimal]:
        totals: dict[str, Decimal] = {}
        with self._lock:
            for expense in self._expenses.values():
                if expense.cycle_id == cycle_id:
                    totals[expense.category] = (
                        totals.get(expense.category, Decimal("0")) + expense.amount
                    )
        return totals

    # -------------------------------------------------------------------
    # Alerts
    # -------------------------------------------------------------------

    async def append_alert(
        self,
        user_id: int,
        title: Optional[str],
        message: str,
        cycle_id: Optional[int] = None,
        level: Optional[AlertLevel] = None,
    ) -> AlertRecord:
        with self._lock:
            record = AlertRecord(
                id=next(self._alert_ids),
                user_id=user_id,
                title=title,
                message=message,
                cycle_id=cycle_id,
                level=level,
            )
            self._alerts[record.id] = record
            return record

    async def list_alerts(self, user_id: int) -> list[AlertRecord]:
        with self._lock:
            alerts = [a for a in self._alerts.values() if a.user_id == user_id]
        alerts.sort(key=lambda a: (a.created_at, a.id), reverse=True)
        return alerts

    # -------------------------------------------------------------------
    # Audit
    # -------------------------------------------------------------------

    async def append_event(self, event: AuditEvent) -> bool:
        with self._lock:
            self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        with self._lock:
            events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: int,
    ) -> list[AuditEvent]:
        with self._lock:
            events = [
                e for e in self._events
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        with self._lock:
            events = list(reversed(self._events))
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
