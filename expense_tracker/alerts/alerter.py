"""
Threshold Alerter

Turns a cycle summary into at most one budget alert.

DESIGN DECISION: Each cycle carries a watermark, the highest level already
alerted. An alert is recorded only when the current level is strictly above
the watermark, so:
1. A level fires at most once per cycle
2. A lower level never fires after a higher one
3. A new cycle starts from a clean watermark

The AlertRecord is appended BEFORE the watermark is raised. If the second
write fails, the next expense alerts again (a duplicate), but an alert is
never lost.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog

from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.models.ledger import AlertLevel, AlertRecord, CycleSummary
from expense_tracker.services.storage import (
    AlertStorageInterface,
    CycleStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


_TITLES = {
    AlertLevel.THIRTY: "Budget Alert: 30% of salary spent",
    AlertLevel.FIFTY: "Budget Alert: half of salary spent",
    AlertLevel.EIGHTY: "Budget Alert: 80% of salary spent",
    AlertLevel.FULL: "Budget Alert: salary fully spent",
}


def evaluate_alert_level(total_spent: Decimal, salary: Decimal) -> AlertLevel:
    """
    Highest threshold reached by spent/salary.

    Thresholds are checked from the top down and the first match wins.
    A zero or negative salary never alerts.
    """
    if salary <= 0:
        return AlertLevel.NONE

    ratio = total_spent / salary * Decimal("100")
    for level in AlertLevel.descending():
        if ratio >= level.threshold:
            return level
    return AlertLevel.NONE


def build_alert_message(level: AlertLevel) -> tuple[str, str]:
    """Title and body for a budget alert."""
    return (
        _TITLES[level],
        f"You have spent {level.value} of your salary. Please check your expenses.",
    )


class ThresholdAlerter:
    """
    Records budget alerts against the per-cycle watermark.

    Must be called while holding the user's lock: the watermark read and
    the record append are not atomic on their own.
    """

    def __init__(
        self,
        cycle_storage: CycleStorageInterface,
        alert_storage: AlertStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._cycles = cycle_storage
        self._alerts = alert_storage
        self._audit_logger = audit_logger

    async def evaluate_and_record(
        self,
        summary: CycleSummary,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[AlertRecord]:
        """
        Record an alert if the summary crossed a new threshold.

        Returns:
            The new AlertRecord, or None when nothing new was crossed

        Raises:
            StorageError: If the watermark can't be read or the record
                can't be appended
        """
        correlation_id = correlation_id or create_correlation_id()

        level = evaluate_alert_level(summary.spent, summary.salary)
        if level == AlertLevel.NONE:
            return None

        watermark = await self._cycles.get_alert_watermark(summary.cycle_id)
        if level <= watermark:
            if self._audit_logger:
                await self._audit_logger.log_alert_suppressed(
                    cycle_id=summary.cycle_id,
                    level=level.value,
                    watermark=watermark.value,
                    correlation_id=correlation_id,
                )
            return None

        title, message = build_alert_message(level)
        record = await self._alerts.append_alert(
            user_id=summary.user_id,
            title=title,
            message=message,
            cycle_id=summary.cycle_id,
            level=level,
        )

        try:
            await self._cycles.set_alert_watermark(summary.cycle_id, level)
        except StorageError as e:
            # Record is stored; next crossing may repeat it
            logger.warning(
                "alert_watermark_not_raised",
                cycle_id=summary.cycle_id,
                level=level.value,
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type="alert_watermark_not_raised",
                    error_message=str(e),
                    details={"cycle_id": summary.cycle_id, "level": level.value},
                    correlation_id=correlation_id,
                )

        if self._audit_logger:
            await self._audit_logger.log_alert_emitted(
                alert_id=record.id,
                cycle_id=summary.cycle_id,
                level=level.value,
                correlation_id=correlation_id,
            )

        return record
