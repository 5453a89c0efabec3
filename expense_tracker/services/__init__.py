"""Services package."""

from expense_tracker.services.storage import (
    AuditStorageInterface,
    HydrationError,
    InMemoryAuditStorage,
    InMemoryStorage,
    KeyValueStorageInterface,
    LocalFileStorage,
    NotFoundError,
    PersistenceDegradedError,
    StorageError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "HydrationError",
    "InMemoryAuditStorage",
    "InMemoryStorage",
    "KeyValueStorageInterface",
    "LocalFileStorage",
    "NotFoundError",
    "PersistenceDegradedError",
    "StorageError",
]
