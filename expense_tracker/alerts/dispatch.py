"""
Alert dispatch.

Delivers a stored AlertRecord to the user's device. Runs after the user's
lock is released and never raises: the record is already persisted and
listed by GET /notifications, the push is a courtesy.
"""

from typing import Optional
from uuid import UUID

import structlog

from expense_tracker.audit import AuditLogger
from expense_tracker.models.ledger import AlertRecord
from expense_tracker.services.push import PushSender
from expense_tracker.services.storage import UserStorageInterface


logger = structlog.get_logger(__name__)


class AlertDispatcher:
    """Pushes alerts to the user's registered device."""

    def __init__(
        self,
        user_storage: UserStorageInterface,
        push_sender: Optional[PushSender] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._users = user_storage
        self._push = push_sender
        self._audit_logger = audit_logger

    async def dispatch(
        self,
        user_id: int,
        alert: AlertRecord,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Push one alert.

        Returns:
            True if a push was delivered, False if skipped or failed
        """
        if self._push is None:
            return False

        try:
            user = await self._users.get_user(user_id)
        except Exception as e:
            logger.warning("dispatch_user_lookup_failed", user_id=user_id, error=str(e))
            return False

        if user is None or not user.push_token:
            logger.debug("dispatch_skipped_no_token", user_id=user_id)
            return False

        try:
            await self._push.send(user.push_token, alert.title or "", alert.message)
        except Exception as e:
            # Any sender failure; the alert is already stored
            logger.warning(
                "push_dispatch_failed",
                error_type=type(e).__name__,
                user_id=user_id,
                alert_id=alert.id,
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_notification_failed(
                    alert_id=alert.id,
                    user_id=user_id,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return False

        if self._audit_logger:
            await self._audit_logger.log_notification_sent(
                alert_id=alert.id,
                user_id=user_id,
                correlation_id=correlation_id,
            )
        return True
