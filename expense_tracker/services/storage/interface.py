"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run against SQLite/PostgreSQL through SQLAlchemy in production
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Just the operations the accounting core needs.

Each method is a single atomic unit at the storage level. Multi-step units
(create cycle + retarget pointer) are serialized by the caller with a
per-user lock.
"""

from abc import ABC, abstractmethod
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


class UserStorageInterface(ABC):
    """
    Abstract interface for the user rows the core reads and updates.

    User rows are created by the registration flow on behalf of the
    auth collaborator.
    """

    @abstractmethod
    async def create_user(
        self,
        full_name: str,
        email: str,
        password_hash: str,
        salary: Decimal,
        push_token: Optional[str] = None,
    ) -> UserAccount:
        """
        Create a user without a current cycle.

        Raises:
            DuplicateError: If the email is already registered
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[UserAccount]:
        """
        Retrieve a user by ID.

        Returns:
            The user if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[UserAccount]:
        """Retrieve a user by email, None if unknown."""
        pass

    @abstractmethod
    async def delete_user(self, user_id: int) -> bool:
        """
        Delete a user row.

        Only used to roll back a registration that never completed.

        Returns:
            True if a row was deleted
        """
        pass

    @abstractmethod
    async def update_salary(self, user_id: int, salary: Decimal) -> UserAccount:
        """
        Change the user's baseline salary.

        Raises:
            NotFoundError: If the user doesn't exist
        """
        pass

    @abstractmethod
    async def set_current_cycle(self, user_id: int, cycle_id: int) -> None:
        """
        Point the user at a cycle.

        Raises:
            NotFoundError: If the user doesn't exist
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    async def set_push_token(self, user_id: int, push_token: Optional[str]) -> None:
        """
        Store the device token used for push notifications.

        Raises:
            NotFoundError: If the user doesn't exist
        """
        pass


class CycleStorageInterface(ABC):
    """
    Abstract interface for salary cycle storage.

    Cycles are insert-only. The alert watermark is kept beside the cycle,
    not on it, so the cycle row never changes.
    """

    @abstractmethod
    async def create_cycle(self, user_id: int, salary: Decimal) -> SalaryCycle:
        """
        Insert a new cycle for a user. Does NOT touch the user's pointer.

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def get_cycle(self, cycle_id: int) -> Optional[SalaryCycle]:
        """Retrieve a cycle by ID, None if unknown."""
        pass

    @abstractmethod
    async def list_cycles(self, user_id: int) -> list[SalaryCycle]:
        """
        List all cycles of a user.

        Returns:
            Cycles, most recently started first
        """
        pass

    @abstractmethod
    async def delete_cycles_for_user(self, user_id: int) -> int:
        """
        Delete every cycle of a user.

        Only used to roll back a registration that never completed.

        Returns:
            Number of cycles deleted
        """
        pass

    @abstractmethod
    async def get_alert_watermark(self, cycle_id: int) -> AlertLevel:
        """
        Highest alert level already emitted for a cycle.

        Returns:
            AlertLevel.NONE if nothing was emitted yet
        """
        pass

    @abstractmethod
    async def set_alert_watermark(self, cycle_id: int, level: AlertLevel) -> None:
        """
        Raise the alert watermark of a cycle.

        A level lower than the stored one is ignored; the watermark never
        goes down.
        """
        pass


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense storage operations.
    """

    @abstractmethod
    async def append_expense(
        self,
        user_id: int,
        amount: Decimal,
        category: str,
        expense_date: date,
        budget_type: Optional[str] = None,
        note: Optional[str] = None,
    ) -> Expense:
        """
        Insert an expense stamped with the user's current cycle.

        Reading the pointer and inserting the row happen in one
        storage-level transaction.

        Raises:
            NotFoundError: If the user doesn't exist or has no current cycle
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def get_expense(self, expense_id: int) -> Optional[Expense]:
        """Retrieve an expense by ID, None if unknown."""
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: int) -> bool:
        """
        Delete an expense by ID.

        Returns:
            True if a row was deleted, False if it didn't exist
        """
        pass

    @abstractmethod
    async def list_expenses_for_cycle(self, cycle_id: int) -> list[Expense]:
        """
        List expenses bound to a cycle.

        Returns:
            Expenses, newest expense date first
        """
        pass

    @abstractmethod
    async def list_expenses_for_user(self, user_id: int) -> list[Expense]:
        """
        List every expense of a user across all cycles.

        Returns:
            Expenses, newest expense date first
        """
        pass

    @abstractmethod
    async def total_for_cycle(self, cycle_id: int) -> Decimal:
        """
        Sum of all expense amounts bound to a cycle.

        Returns:
            Decimal("0") when the cycle has no expenses
        """
        pass

    @abstractmethod
    async def totals_by_category(self, cycle_id: int) -> dict[str, Decimal]:
        """
        Sum of expense amounts bound to a cycle, grouped by category.
        """
        pass


class AlertStorageInterface(ABC):
    """
    Abstract interface for the notification log.

    Append-only. No deduplication at this level.
    """

    @abstractmethod
    async def append_alert(
        self,
        user_id: int,
        title: Optional[str],
        message: str,
        cycle_id: Optional[int] = None,
        level: Optional[AlertLevel] = None,
    ) -> AlertRecord:
        """
        Append a notification for a user.

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def list_alerts(self, user_id: int) -> list[AlertRecord]:
        """
        List notifications of a user.

        Returns:
            Notifications, newest first
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one request).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: int,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
