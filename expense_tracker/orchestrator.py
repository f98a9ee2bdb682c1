"""
Main Orchestrator for Expense Tracker

This module ties together all the components and defines the
end-to-end flows for:
1. Expense recording (validate → stamp cycle → recompute → alert → push)
2. Notification log (manual add, list)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Ledger, lifecycle manager and registration share ONE lock registry
- Push dispatch happens only after the ledger has released the lock
- Every step is audited

This is the "glue" that wires storage, logging and transports once, so the
HTTP layer and tests get the same object graph.
"""

from typing import Optional
from uuid import UUID

import structlog

from expense_tracker.accounting import AccountingEngine
from expense_tracker.accounts import RegistrationService
from expense_tracker.alerts import AlertDispatcher, ThresholdAlerter
from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.config import get_settings
from expense_tracker.cycles import CycleLifecycleManager
from expense_tracker.exceptions import ValidationError
from expense_tracker.ledger import ExpenseLedger
from expense_tracker.locks import UserLockRegistry
from expense_tracker.models.ledger import (
    AlertRecord,
    ExpenseDraft,
    ExpenseReceipt,
    ValidationIssue,
)
from expense_tracker.services.push import ExpoPushService, MailSender, PushSender
from expense_tracker.services.storage import (
    InMemoryStorage,
    NotFoundError,
    SqlStorage,
    build_engine,
    build_session_factory,
    init_db,
)
from expense_tracker.validation import ExpenseValidator


logger = structlog.get_logger(__name__)


class ExpenseFlow:
    """
    Orchestrates recording an expense outside the HTTP layer.

    Flow:
    1. Ledger append (validation, cycle stamp, summary, alert record)
    2. Lock released
    3. Push dispatch of the alert, if any

    The HTTP route does step 3 as a background task instead.
    """

    def __init__(
        self,
        ledger: ExpenseLedger,
        dispatcher: AlertDispatcher,
    ):
        self._ledger = ledger
        self._dispatcher = dispatcher

    async def record_expense(
        self,
        draft: ExpenseDraft,
        dispatch: bool = True,
        correlation_id: Optional[UUID] = None,
    ) -> ExpenseReceipt:
        correlation_id = correlation_id or create_correlation_id()
        receipt = await self._ledger.append(draft, correlation_id)

        if dispatch and receipt.alert is not None:
            await self._dispatcher.dispatch(
                receipt.expense.user_id,
                receipt.alert,
                correlation_id,
            )

        return receipt


class NotificationFlow:
    """Manual entries in, and reads of, a user's notification log."""

    def __init__(self, storage):
        self._storage = storage

    async def add(
        self,
        user_id: int,
        title: Optional[str],
        message: Optional[str],
    ) -> AlertRecord:
        """
        Append a notification that didn't come from the alerter.

        Raises:
            ValidationError: If the message is empty
            NotFoundError: If the user doesn't exist
        """
        if not message or not message.strip():
            issue = ValidationIssue(
                field="message",
                issue_type="missing",
                message="Message is required",
                severity="error",
            )
            raise ValidationError(issue.message, issues=[issue])

        if await self._storage.get_user(user_id) is None:
            raise NotFoundError(f"User not found: {user_id}")

        return await self._storage.append_alert(
            user_id=user_id,
            title=title,
            message=message.strip(),
        )

    async def list_for_user(self, user_id: int) -> list[AlertRecord]:
        """Notifications of a user, newest first."""
        return await self._storage.list_alerts(user_id)


class AppComponents:
    """The wired object graph, one per process."""

    def __init__(
        self,
        storage,
        backend: str,
        locks: UserLockRegistry,
        audit_logger: AuditLogger,
        lifecycle: CycleLifecycleManager,
        accounting: AccountingEngine,
        alerter: ThresholdAlerter,
        dispatcher: AlertDispatcher,
        ledger: ExpenseLedger,
        registration: RegistrationService,
        expense_flow: ExpenseFlow,
        notifications: NotificationFlow,
    ):
        self.storage = storage
        self.backend = backend
        self.locks = locks
        self.audit_logger = audit_logger
        self.lifecycle = lifecycle
        self.accounting = accounting
        self.alerter = alerter
        self.dispatcher = dispatcher
        self.ledger = ledger
        self.registration = registration
        self.expense_flow = expense_flow
        self.notifications = notifications


def _build_storage(backend: str, database_url: Optional[str]):
    if backend == "memory":
        return InMemoryStorage()

    engine = build_engine(database_url)
    init_db(engine)
    return SqlStorage(build_session_factory(engine))


def create_app_components(
    backend: Optional[str] = None,
    storage=None,
    push_sender: Optional[PushSender] = None,
    mail_sender: Optional[MailSender] = None,
    database_url: Optional[str] = None,
    retarget_wait=None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        backend: "sql" or "memory"; defaults to AppSettings.storage_backend
        storage: A ready storage object implementing every storage
                interface. Overrides backend.
        push_sender: Push transport; defaults to Expo when push is enabled
        mail_sender: Mail transport for the welcome mail, if any
        database_url: Overrides DatabaseSettings.url for the sql backend
        retarget_wait: tenacity wait strategy for pointer retargets

    Returns:
        AppComponents
    """
    settings = get_settings()

    if storage is None:
        backend = backend or settings.app.storage_backend
        storage = _build_storage(backend, database_url)
    else:
        backend = backend or type(storage).__name__

    if push_sender is None and settings.push.enabled:
        push_sender = ExpoPushService()

    logger.info("components_created", backend=backend, push=push_sender is not None)

    locks = UserLockRegistry()
    audit_logger = AuditLogger(storage)

    lifecycle = CycleLifecycleManager(
        user_storage=storage,
        cycle_storage=storage,
        locks=locks,
        audit_logger=audit_logger,
        retarget_wait=retarget_wait,
    )
    accounting = AccountingEngine(
        user_storage=storage,
        cycle_storage=storage,
        expense_storage=storage,
    )
    alerter = ThresholdAlerter(
        cycle_storage=storage,
        alert_storage=storage,
        audit_logger=audit_logger,
    )
    dispatcher = AlertDispatcher(
        user_storage=storage,
        push_sender=push_sender,
        audit_logger=audit_logger,
    )
    ledger = ExpenseLedger(
        user_storage=storage,
        expense_storage=storage,
        accounting=accounting,
        alerter=alerter,
        locks=locks,
        validator=ExpenseValidator(),
        audit_logger=audit_logger,
    )
    registration = RegistrationService(
        user_storage=storage,
        cycle_storage=storage,
        lifecycle=lifecycle,
        locks=locks,
        push_sender=push_sender,
        mail_sender=mail_sender,
        audit_logger=audit_logger,
    )

    return AppComponents(
        storage=storage,
        backend=backend,
        locks=locks,
        audit_logger=audit_logger,
        lifecycle=lifecycle,
        accounting=accounting,
        alerter=alerter,
        dispatcher=dispatcher,
        ledger=ledger,
        registration=registration,
        expense_flow=ExpenseFlow(ledger, dispatcher),
        notifications=NotificationFlow(storage),
    )
