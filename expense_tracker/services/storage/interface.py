"""
Abstract Storage Interface

DESIGN DECISION: The expense collection lives in a single named slot of a
key-value store, written in full and read in full. We define an abstract
interface for that slot so we can:
1. Keep data in a local JSON file for real use
2. Use in-memory storage for testing
3. Swap in another backend later without touching the store

The interface is intentionally tiny - read a blob, write a blob.
"""

from abc import ABC, abstractmethod
from typing import Optional

from expense_tracker.models.audit import AuditEvent


class KeyValueStorageInterface(ABC):
    """
    Abstract interface for durable key-value slots.

    Values are opaque text. Backends raise StorageError on I/O failure.
    """

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Args:
            key: Slot name

        Returns:
            The stored text, or None if the slot is empty

        Raises:
            StorageError: If the slot exists but cannot be read
        """
        pass

    @abstractmethod
    def write(self, key: str, value: str) -> None:
        """
        Replace the value stored under a key.

        Args:
            key: Slot name
            value: Full new contents of the slot

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove a slot.

        Returns:
            True if something was removed
        """
        pass

    def describe(self) -> str:
        """Short human-readable location, for status pages."""
        return type(self).__name__


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class HydrationError(StorageError):
    """Stored data could not be read back into expenses."""
    pass


class PersistenceDegradedError(StorageError):
    """
    A mutation was applied in memory but could not be written to disk.

    The in-memory collection is now ahead of the durable copy.
    """

    def __init__(self, message: str, operation: str):
        super().__init__(message)
        self.operation = operation
