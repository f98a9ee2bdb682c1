"""
Cycle Lifecycle Manager

Opens salary cycles and moves a user's current-cycle pointer onto them.

DESIGN DECISION: Opening a cycle is two writes (insert the cycle, retarget
the pointer) under the user's lock. There is no cross-table transaction
spanning both, so a failed retarget leaves a cycle nobody points at. We
retry the retarget, then check whether it actually landed, and only then
give up loudly:
1. The orphan is recorded in the audit trail
2. CycleRetargetError is raised to the caller
3. find_orphaned_cycles() can locate it later

CRITICAL: The user's pointer is never left pointing at a cycle that
doesn't exist, and a failed retarget is never reported as success.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.config import get_settings
from expense_tracker.exceptions import CycleRetargetError
from expense_tracker.locks import UserLockRegistry
from expense_tracker.models.ledger import SalaryCycle, UserAccount
from expense_tracker.services.storage import (
    CycleStorageInterface,
    NotFoundError,
    StorageError,
    UserStorageInterface,
)


logger = structlog.get_logger(__name__)


class CycleLifecycleManager:
    """
    Creates cycles and retargets the user's current-cycle pointer.

    Shares its UserLockRegistry with the ExpenseLedger so that an expense
    can never be stamped with a pointer that is in the middle of moving.
    """

    def __init__(
        self,
        user_storage: UserStorageInterface,
        cycle_storage: CycleStorageInterface,
        locks: UserLockRegistry,
        audit_logger: Optional[AuditLogger] = None,
        retarget_attempts: Optional[int] = None,
        retarget_wait=None,
    ):
        settings = get_settings().app
        self._users = user_storage
        self._cycles = cycle_storage
        self._locks = locks
        self._audit_logger = audit_logger
        self._retarget_attempts = retarget_attempts or settings.retarget_attempts
        self._retarget_wait = retarget_wait or wait_exponential(
            multiplier=settings.retarget_backoff_seconds,
            max=5,
        )

    async def _require_user(self, user_id: int) -> UserAccount:
        user = await self._users.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}")
        return user

    async def _retarget(self, user_id: int, cycle_id: int) -> None:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._retarget_attempts),
            wait=self._retarget_wait,
            retry=retry_if_exception_type(StorageError),
            reraise=True,
        ):
            with attempt:
                await self._users.set_current_cycle(user_id, cycle_id)

    async def _open_locked(
        self,
        user: UserAccount,
        salary: Decimal,
        correlation_id: UUID,
    ) -> SalaryCycle:
        """Create a cycle and retarget. Caller holds the user's lock."""
        previous_cycle_id = user.current_cycle_id
        cycle = await self._cycles.create_cycle(user.id, salary)

        try:
            await self._retarget(user.id, cycle.id)
        except StorageError as e:
            # The last write may have landed even though we saw an error
            try:
                refreshed = await self._users.get_user(user.id)
            except StorageError:
                refreshed = None

            current_cycle_id = refreshed.current_cycle_id if refreshed else None
            if current_cycle_id != cycle.id:
                logger.error(
                    "cycle_retarget_failed",
                    user_id=user.id,
                    cycle_id=cycle.id,
                    current_cycle_id=current_cycle_id,
                    error=str(e),
                )
                if self._audit_logger:
                    await self._audit_logger.log_cycle_retarget_failed(
                        cycle_id=cycle.id,
                        user_id=user.id,
                        current_cycle_id=current_cycle_id,
                        error_message=str(e),
                        correlation_id=correlation_id,
                    )
                raise CycleRetargetError(
                    user_id=user.id,
                    orphaned_cycle_id=cycle.id,
                    current_cycle_id=current_cycle_id,
                ) from e

        if self._audit_logger:
            await self._audit_logger.log_cycle_opened(
                cycle_id=cycle.id,
                user_id=user.id,
                salary=str(salary),
                previous_cycle_id=previous_cycle_id,
                correlation_id=correlation_id,
            )

        return cycle

    async def open_cycle(
        self,
        user_id: int,
        salary: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> SalaryCycle:
        """
        Open a cycle with the given salary and make it current.

        Raises:
            NotFoundError: If the user doesn't exist
            CycleRetargetError: If the pointer could not be moved
            StorageError: If the cycle could not be created
        """
        correlation_id = correlation_id or create_correlation_id()
        async with self._locks.hold(user_id):
            user = await self._require_user(user_id)
            return await self._open_locked(user, salary, correlation_id)

    async def reload_cycle(
        self,
        user_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> SalaryCycle:
        """
        Start a new cycle with the user's current baseline salary.

        The salary is read inside the lock, so a concurrent salary update
        lands either fully before or fully after the new cycle.
        """
        correlation_id = correlation_id or create_correlation_id()
        async with self._locks.hold(user_id):
            user = await self._require_user(user_id)
            return await self._open_locked(user, user.salary, correlation_id)

    async def list_cycles(self, user_id: int) -> list[SalaryCycle]:
        """All cycles of a user, most recently started first."""
        await self._require_user(user_id)
        return await self._cycles.list_cycles(user_id)

    async def find_orphaned_cycles(self, user_id: int) -> list[SalaryCycle]:
        """
        Cycles opened after the current one.

        A non-empty result is the trace of a retarget that never landed.
        When the user has no current cycle at all, every cycle is orphaned.
        """
        user = await self._require_user(user_id)
        cycles = await self._cycles.list_cycles(user_id)

        if user.current_cycle_id is None:
            return cycles

        current = next((c for c in cycles if c.id == user.current_cycle_id), None)
        if current is None:
            return cycles

        return [
            c for c in cycles
            if (c.started_at, c.id) > (current.started_at, current.id)
        ]
