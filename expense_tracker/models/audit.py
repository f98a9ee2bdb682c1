"""
Audit Models for Expense Tracker

Every significant action in the system is logged for audit purposes.
This provides:
1. Complete traceability of all operations
2. Debugging information when things go wrong
3. A record of partial failures (orphaned cycles, dropped notifications)
4. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step of the expense and cycle flows has its own event type.
    """
    # Accounts
    USER_REGISTERED = "user_registered"
    REGISTRATION_ROLLED_BACK = "registration_rolled_back"
    SALARY_UPDATED = "salary_updated"

    # Cycles
    CYCLE_OPENED = "cycle_opened"
    CYCLE_RETARGET_FAILED = "cycle_retarget_failed"

    # Ledger
    EXPENSE_RECORDED = "expense_recorded"
    EXPENSE_REJECTED = "expense_rejected"
    EXPENSE_DELETED = "expense_deleted"

    # Alerts
    ALERT_EMITTED = "alert_emitted"
    ALERT_SUPPRESSED = "alert_suppressed"
    NOTIFICATION_SENT = "notification_sent"
    NOTIFICATION_FAILED = "notification_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'user', 'cycle', 'expense', 'alert')"
    )
    entity_id: Optional[int] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one request)"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    # Additional data (event-specific)
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    # User action tracking
    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.cycle_opened(cycle_id, user_id, "1000.00", correlation_id)
        event = AuditEventBuilder.expense_recorded(expense_id, cycle_id, "400.00", correlation_id)
    """

    @staticmethod
    def user_registered(
        user_id: int,
        cycle_id: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_REGISTERED,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"User {user_id} registered with cycle {cycle_id}",
            details={
                "cycle_id": cycle_id,
            },
            is_user_action=True,
        )

    @staticmethod
    def registration_rolled_back(
        user_id: int,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REGISTRATION_ROLLED_BACK,
            severity=AuditSeverity.ERROR,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Registration of user {user_id} rolled back: first cycle could not be opened",
            error_message=error_message,
        )

    @staticmethod
    def salary_updated(
        user_id: int,
        old_salary: str,
        new_salary: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SALARY_UPDATED,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Baseline salary changed from {old_salary} to {new_salary}",
            details={
                "old_salary": old_salary,
                "new_salary": new_salary,
            },
            is_user_action=True,
        )

    @staticmethod
    def cycle_opened(
        cycle_id: int,
        user_id: int,
        salary: str,
        previous_cycle_id: Optional[int],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CYCLE_OPENED,
            entity_type="cycle",
            entity_id=cycle_id,
            correlation_id=correlation_id,
            description=f"Cycle {cycle_id} opened for user {user_id} with salary {salary}",
            details={
                "user_id": user_id,
                "salary": salary,
                "previous_cycle_id": previous_cycle_id,
            },
        )

    @staticmethod
    def cycle_retarget_failed(
        cycle_id: int,
        user_id: int,
        current_cycle_id: Optional[int],
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CYCLE_RETARGET_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="cycle",
            entity_id=cycle_id,
            correlation_id=correlation_id,
            description=f"Cycle {cycle_id} is orphaned: user {user_id} still points at {current_cycle_id}",
            details={
                "user_id": user_id,
                "current_cycle_id": current_cycle_id,
            },
            error_message=error_message,
        )

    @staticmethod
    def expense_recorded(
        expense_id: int,
        cycle_id: int,
        amount: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_RECORDED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense of {amount} recorded in cycle {cycle_id}",
            details={
                "cycle_id": cycle_id,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_rejected(
        user_id: Optional[int],
        issues: list[dict],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Expense rejected with {len(issues)} issues",
            details={
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(
        expense_id: int,
        cycle_id: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense {expense_id} deleted from cycle {cycle_id}",
            details={
                "cycle_id": cycle_id,
            },
            is_user_action=True,
        )

    @staticmethod
    def alert_emitted(
        alert_id: int,
        cycle_id: int,
        level: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALERT_EMITTED,
            entity_type="alert",
            entity_id=alert_id,
            correlation_id=correlation_id,
            description=f"Budget alert {level} emitted for cycle {cycle_id}",
            details={
                "cycle_id": cycle_id,
                "level": level,
            },
        )

    @staticmethod
    def alert_suppressed(
        cycle_id: int,
        level: str,
        watermark: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALERT_SUPPRESSED,
            severity=AuditSeverity.DEBUG,
            entity_type="cycle",
            entity_id=cycle_id,
            correlation_id=correlation_id,
            description=f"Alert {level} suppressed, cycle already alerted at {watermark}",
            details={
                "level": level,
                "watermark": watermark,
            },
        )

    @staticmethod
    def notification_sent(
        alert_id: Optional[int],
        user_id: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATION_SENT,
            entity_type="alert",
            entity_id=alert_id,
            correlation_id=correlation_id,
            description=f"Push notification delivered to user {user_id}",
            details={
                "user_id": user_id,
            },
        )

    @staticmethod
    def notification_failed(
        alert_id: Optional[int],
        user_id: int,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="alert",
            entity_id=alert_id,
            correlation_id=correlation_id,
            description=f"Push notification to user {user_id} failed",
            details={
                "user_id": user_id,
            },
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
