"""Services package."""

from expense_tracker.services.push import (
    ExpoPushService,
    MailSender,
    NotificationDispatchError,
    PushSender,
)
from expense_tracker.services.storage import (
    AlertStorageInterface,
    AuditStorageInterface,
    CycleStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    InMemoryStorage,
    NotFoundError,
    SqlStorage,
    StorageError,
    UserStorageInterface,
)

__all__ = [
    # Push services
    "ExpoPushService",
    "MailSender",
    "NotificationDispatchError",
    "PushSender",
    # Storage services
    "AlertStorageInterface",
    "AuditStorageInterface",
    "CycleStorageInterface",
    "DuplicateError",
    "ExpenseStorageInterface",
    "InMemoryStorage",
    "NotFoundError",
    "SqlStorage",
    "StorageError",
    "UserStorageInterface",
]
