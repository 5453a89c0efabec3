"""
In-Memory Storage Implementations

Used for tests and for the `memory` backend, where nothing should
survive a restart.
"""

from collections import deque
from typing import Optional

from expense_tracker.models.audit import AuditEvent
from expense_tracker.services.storage.interface import (
    AuditStorageInterface,
    KeyValueStorageInterface,
)


class InMemoryStorage(KeyValueStorageInterface):
    """Dict-backed key-value slots."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._slots: dict[str, str] = dict(initial or {})

    def read(self, key: str) -> Optional[str]:
        return self._slots.get(key)

    def write(self, key: str, value: str) -> None:
        self._slots[key] = value

    def delete(self, key: str) -> bool:
        return self._slots.pop(key, None) is not None

    def describe(self) -> str:
        return "In-memory (not saved between runs)"


class InMemoryAuditStorage(AuditStorageInterface):
    """
    Keeps the most recent audit events in memory.

    Oldest events fall off once max_events is reached.
    """

    def __init__(self, max_events: int = 500):
        self._events: deque[AuditEvent] = deque(maxlen=max_events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = list(self._events)
        events.reverse()
        return events[:limit]
