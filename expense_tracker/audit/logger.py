"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability of expenses, cycles and alerts
2. Debugging capability
3. A durable record of partial failures (orphaned cycles, lost pushes)

The audit logger:
- Is async to fit the request flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from expense_tracker.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """
    Route stdlib logging (and therefore structlog output) to stdout.

    Called once at application startup with AppSettings.log_level.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    logging.getLogger().setLevel(level.upper())


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("expense_tracker.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    # -------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------

    async def log_user_registered(
        self,
        user_id: int,
        cycle_id: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.user_registered(
            user_id=user_id,
            cycle_id=cycle_id,
            correlation_id=correlation_id,
        ))

    async def log_registration_rolled_back(
        self,
        user_id: int,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.registration_rolled_back(
            user_id=user_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_salary_updated(
        self,
        user_id: int,
        old_salary: str,
        new_salary: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.salary_updated(
            user_id=user_id,
            old_salary=old_salary,
            new_salary=new_salary,
            correlation_id=correlation_id,
        ))

    # -------------------------------------------------------------------
    # Cycles
    # -------------------------------------------------------------------

    async def log_cycle_opened(
        self,
        cycle_id: int,
        user_id: int,
        salary: str,
        previous_cycle_id: Optional[int],
        correlation_id: UUID,
    ) -> None:
        """Log a new cycle that the user now points at."""
        await self.log(AuditEventBuilder.cycle_opened(
            cycle_id=cycle_id,
            user_id=user_id,
            salary=salary,
            previous_cycle_id=previous_cycle_id,
            correlation_id=correlation_id,
        ))

    async def log_cycle_retarget_failed(
        self,
        cycle_id: int,
        user_id: int,
        current_cycle_id: Optional[int],
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a cycle left orphaned by a failed pointer update."""
        await self.log(AuditEventBuilder.cycle_retarget_failed(
            cycle_id=cycle_id,
            user_id=user_id,
            current_cycle_id=current_cycle_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    # -------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------

    async def log_expense_recorded(
        self,
        expense_id: int,
        cycle_id: int,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expense_recorded(
            expense_id=expense_id,
            cycle_id=cycle_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_expense_rejected(
        self,
        user_id: Optional[int],
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expense_rejected(
            user_id=user_id,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_expense_deleted(
        self,
        expense_id: int,
        cycle_id: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expense_deleted(
            expense_id=expense_id,
            cycle_id=cycle_id,
            correlation_id=correlation_id,
        ))

    # -------------------------------------------------------------------
    # Alerts
    # -------------------------------------------------------------------

    async def log_alert_emitted(
        self,
        alert_id: int,
        cycle_id: int,
        level: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.alert_emitted(
            alert_id=alert_id,
            cycle_id=cycle_id,
            level=level,
            correlation_id=correlation_id,
        ))

    async def log_alert_suppressed(
        self,
        cycle_id: int,
        level: str,
        watermark: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.alert_suppressed(
            cycle_id=cycle_id,
            level=level,
            watermark=watermark,
            correlation_id=correlation_id,
        ))

    async def log_notification_sent(
        self,
        alert_id: Optional[int],
        user_id: int,
        correlation_id: Optional[UUID],
    ) -> None:
        await self.log(AuditEventBuilder.notification_sent(
            alert_id=alert_id,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_notification_failed(
        self,
        alert_id: Optional[int],
        user_id: int,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> None:
        await self.log(AuditEventBuilder.notification_failed(
            alert_id=alert_id,
            user_id=user_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., adding an expense).
    Pass it through all subsequent operations.
    """
    return uuid4()
