"""
Audit Logger

DESIGN DECISION: Every user-facing change to the expense collection is
logged. This provides:
1. Traceability of adds, edits and deletes
2. A visible trail when a save to disk fails
3. A recent-activity view in the app

The audit logger:
- Is async to fit the async facade the UI talks to
- Gracefully handles failures (doesn't crash the app if logging fails)
- Always logs locally through structlog
"""

import logging
import sys
from typing import Optional

import structlog

from expense_tracker.models.audit import AuditEvent, AuditEventBuilder
from expense_tracker.services.storage.interface import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """
    Route stdlib logging (and therefore structlog) to stderr.

    structlog renders the JSON line; the handler only prints it.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )


def get_logger(name: Optional[str] = None):
    """Get a structlog logger bound to a module name."""
    return structlog.get_logger(name)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage backend (for the activity view), if given
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("expense_tracker.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Audit failures must not break the main flow
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def recent_events(self, limit: int = 50) -> list[AuditEvent]:
        """Most recent stored events, newest first (empty without storage)."""
        if not self._storage:
            return []
        return await self._storage.get_recent_events(limit=limit)

    async def log_expense_added(
        self,
        expense_id: str,
        category: str,
        amount: float,
    ) -> None:
        """Log a new expense."""
        await self.log(AuditEventBuilder.expense_added(
            expense_id=expense_id,
            category=category,
            amount=amount,
        ))

    async def log_expense_updated(
        self,
        expense_id: str,
        changed_fields: list[str],
    ) -> None:
        """Log an edit."""
        await self.log(AuditEventBuilder.expense_updated(
            expense_id=expense_id,
            changed_fields=changed_fields,
        ))

    async def log_expense_deleted(self, expense_id: str) -> None:
        """Log a delete."""
        await self.log(AuditEventBuilder.expense_deleted(expense_id))

    async def log_expenses_cleared(self, removed_count: int) -> None:
        """Log clearing the whole collection."""
        await self.log(AuditEventBuilder.expenses_cleared(removed_count))

    async def log_expense_not_found(
        self,
        expense_id: str,
        operation: str,
    ) -> None:
        """Log an update or delete aimed at an unknown id."""
        await self.log(AuditEventBuilder.expense_not_found(
            expense_id=expense_id,
            operation=operation,
        ))

    async def log_input_rejected(self, error_message: str) -> None:
        """Log form input that failed validation."""
        await self.log(AuditEventBuilder.input_rejected(error_message))

    async def log_expenses_exported(self, row_count: int) -> None:
        """Log a CSV export."""
        await self.log(AuditEventBuilder.expenses_exported(row_count))

    async def log_persistence_degraded(
        self,
        error_message: str,
        operation: str,
    ) -> None:
        """Log a change that reached memory but not disk."""
        await self.log(AuditEventBuilder.persistence_degraded(
            error_message=error_message,
            operation=operation,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
        ))
