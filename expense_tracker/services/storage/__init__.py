"""Storage services package."""

from expense_tracker.services.storage.database import (
    Base,
    build_engine,
    build_session_factory,
    init_db,
)
from expense_tracker.services.storage.interface import (
    AlertStorageInterface,
    AuditStorageInterface,
    CycleStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    StorageError,
    UserStorageInterface,
)
from expense_tracker.services.storage.memory import InMemoryStorage
from expense_tracker.services.storage.sql import SqlStorage

__all__ = [
    # Interfaces
    "AlertStorageInterface",
    "AuditStorageInterface",
    "CycleStorageInterface",
    "ExpenseStorageInterface",
    "UserStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Implementations
    "InMemoryStorage",
    "SqlStorage",
    # Database setup
    "Base",
    "build_engine",
    "build_session_factory",
    "init_db",
]
