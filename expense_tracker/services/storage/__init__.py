"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements a local JSON file as the durable backend, but designed
to be swappable.
"""

from expense_tracker.services.storage.interface import (
    AuditStorageInterface,
    HydrationError,
    KeyValueStorageInterface,
    NotFoundError,
    PersistenceDegradedError,
    StorageError,
)
from expense_tracker.services.storage.local_file import LocalFileStorage
from expense_tracker.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "KeyValueStorageInterface",
    # Exceptions
    "HydrationError",
    "NotFoundError",
    "PersistenceDegradedError",
    "StorageError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryStorage",
    "LocalFileStorage",
]
