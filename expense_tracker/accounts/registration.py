"""
Registration and account updates on behalf of the auth collaborator.

Credential checks, password hashing and one-time codes stay with the
collaborator. What lives here is the part the accounting core depends on:
a user is only reported as registered once their first cycle is open and
their pointer is set.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog

from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.cycles import CycleLifecycleManager
from expense_tracker.exceptions import RegistrationError, ValidationError
from expense_tracker.locks import UserLockRegistry
from expense_tracker.models.ledger import MAX_MONEY, UserAccount, ValidationIssue
from expense_tracker.services.push import MailSender, PushSender
from expense_tracker.services.storage import (
    CycleStorageInterface,
    NotFoundError,
    StorageError,
    UserStorageInterface,
)


logger = structlog.get_logger(__name__)


WELCOME_PUSH_TITLE = "Welcome"
WELCOME_PUSH_BODY = "Signup successful! Enjoy using the app."
WELCOME_MAIL_SUBJECT = "Welcome to Expense Tracker!"


def _check_salary(salary: Decimal) -> None:
    if salary is None or not salary.is_finite() or salary < 0 or salary > MAX_MONEY:
        issue = ValidationIssue(
            field="salary",
            issue_type="invalid_value",
            message=f"Salary must be between 0 and {MAX_MONEY:,.2f}",
            severity="error",
        )
        raise ValidationError(issue.message, issues=[issue])


class RegistrationService:
    """
    Creates users with their first cycle and maintains account fields the
    core reads (baseline salary, push token).
    """

    def __init__(
        self,
        user_storage: UserStorageInterface,
        cycle_storage: CycleStorageInterface,
        lifecycle: CycleLifecycleManager,
        locks: UserLockRegistry,
        push_sender: Optional[PushSender] = None,
        mail_sender: Optional[MailSender] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._users = user_storage
        self._cycles = cycle_storage
        self._lifecycle = lifecycle
        self._locks = locks
        self._push = push_sender
        self._mail = mail_sender
        self._audit_logger = audit_logger

    async def _rollback(self, user_id: int, error: Exception, correlation_id: UUID) -> None:
        try:
            await self._cycles.delete_cycles_for_user(user_id)
            await self._users.delete_user(user_id)
        except StorageError as e:
            logger.error("registration_rollback_failed", user_id=user_id, error=str(e))

        if self._audit_logger:
            await self._audit_logger.log_registration_rolled_back(
                user_id=user_id,
                error_message=str(error),
                correlation_id=correlation_id,
            )

    async def _welcome(self, user: UserAccount) -> None:
        """Best-effort greeting; failures are only logged."""
        if self._mail is not None:
            try:
                await self._mail.send_mail(
                    user.email,
                    WELCOME_MAIL_SUBJECT,
                    f"Hi {user.full_name},\n\nSignup successful! Welcome aboard.",
                )
            except Exception as e:
                logger.warning(
                    "welcome_mail_failed",
                    user_id=user.id,
                    error_type=type(e).__name__,
                    error=str(e),
                )

        if self._push is not None and user.push_token:
            try:
                await self._push.send(user.push_token, WELCOME_PUSH_TITLE, WELCOME_PUSH_BODY)
            except Exception as e:
                logger.warning(
                    "welcome_push_failed",
                    user_id=user.id,
                    error_type=type(e).__name__,
                    error=str(e),
                )

    async def register(
        self,
        full_name: str,
        email: str,
        password_hash: str,
        salary: Decimal,
        push_token: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> UserAccount:
        """
        Create a user and open their first cycle.

        Raises:
            ValidationError: If salary is negative or too large
            DuplicateError: If the email is already registered
            RegistrationError: If the first cycle could not be opened;
                the user row is removed again
        """
        correlation_id = correlation_id or create_correlation_id()
        _check_salary(salary)

        user = await self._users.create_user(
            full_name=full_name,
            email=email,
            password_hash=password_hash,
            salary=salary,
            push_token=push_token,
        )

        try:
            cycle = await self._lifecycle.open_cycle(user.id, salary, correlation_id)
        except StorageError as e:
            await self._rollback(user.id, e, correlation_id)
            raise RegistrationError(
                f"Registration of {email} rolled back: {e}"
            ) from e

        user = user.model_copy(update={"current_cycle_id": cycle.id})

        if self._audit_logger:
            await self._audit_logger.log_user_registered(
                user_id=user.id,
                cycle_id=cycle.id,
                correlation_id=correlation_id,
            )

        await self._welcome(user)
        return user

    async def update_salary(
        self,
        user_id: int,
        salary: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> UserAccount:
        """
        Change the baseline salary used by future cycles.

        The current cycle keeps the salary it was opened with.

        Raises:
            ValidationError: If salary is negative or too large
            NotFoundError: If the user doesn't exist
        """
        correlation_id = correlation_id or create_correlation_id()
        _check_salary(salary)

        async with self._locks.hold(user_id):
            before = await self._users.get_user(user_id)
            if before is None:
                raise NotFoundError(f"User not found: {user_id}")
            user = await self._users.update_salary(user_id, salary)

        if self._audit_logger:
            await self._audit_logger.log_salary_updated(
                user_id=user_id,
                old_salary=str(before.salary),
                new_salary=str(salary),
                correlation_id=correlation_id,
            )
        return user

    async def set_push_token(self, user_id: int, push_token: Optional[str]) -> None:
        """Store (or clear) the device token used for alerts."""
        await self._users.set_push_token(user_id, push_token)
