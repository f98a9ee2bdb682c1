"""
Domain exceptions.

Storage-level errors (StorageError, NotFoundError, DuplicateError) live with
the storage interface. The errors here are raised by the accounting core.
"""

from typing import Optional

from expense_tracker.services.storage.interface import StorageError


class ExpenseTrackerError(Exception):
    """Base exception for the accounting core."""
    pass


class ValidationError(ExpenseTrackerError):
    """
    Input rejected before any write.

    Carries the individual issues so the HTTP layer can report all of them.
    """

    def __init__(self, message: str, issues: Optional[list] = None):
        super().__init__(message)
        self.issues = issues or []


class ForbiddenError(ExpenseTrackerError):
    """Caller tried to act on another user's data."""
    pass


class ZeroSalaryError(ExpenseTrackerError):
    """Spend ratio is undefined because the cycle salary is zero."""
    pass


class RegistrationError(ExpenseTrackerError):
    """Registration could not be completed and was rolled back."""
    pass


class CycleRetargetError(StorageError):
    """
    A new cycle was created but the user's pointer still refers to the old one.

    The new cycle is left orphaned and can be found with
    CycleLifecycleManager.find_orphaned_cycles().
    """

    def __init__(
        self,
        user_id: int,
        orphaned_cycle_id: int,
        current_cycle_id: Optional[int],
    ):
        super().__init__(
            f"Cycle {orphaned_cycle_id} was created for user {user_id} "
            f"but the current cycle is still {current_cycle_id}"
        )
        self.user_id = user_id
        self.orphaned_cycle_id = orphaned_cycle_id
        self.current_cycle_id = current_cycle_id
