"""Push and mail notification services."""

from expense_tracker.services.push.expo import ExpoPushService
from expense_tracker.services.push.interface import (
    MailSender,
    NotificationDispatchError,
    PushSender,
)

__all__ = [
    "ExpoPushService",
    "MailSender",
    "NotificationDispatchError",
    "PushSender",
]
