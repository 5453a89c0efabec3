"""
Audit Models for Expense Tracker

Every user-facing change to the expense collection is recorded as an
audit event. This provides:
1. Traceability of adds, edits and deletes
2. Debugging information when a save silently diverged from disk
3. A recent-activity view for the user

DESIGN DECISION: Events are only ever appended. Clearing the expense
collection does not clear its history.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Mutations
    EXPENSE_ADDED = "expense_added"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"
    EXPENSES_CLEARED = "expenses_cleared"

    # Rejections
    EXPENSE_NOT_FOUND = "expense_not_found"
    INPUT_REJECTED = "input_rejected"

    # Reads worth keeping
    EXPENSES_EXPORTED = "expenses_exported"

    # Storage health
    PERSISTENCE_DEGRADED = "persistence_degraded"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """How loudly an event is logged."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """One entry in the activity trail."""

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Identifier of this event"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="UTC time the event was recorded"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="What happened"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Log level used for this event"
    )

    # Context - which expense is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'collection')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Expense id, when the event concerns one expense"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="One-line summary shown in recent activity"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Structured extras such as amount or changed fields"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="True when a person, not the app itself, caused it"
    )

    def to_log_dict(self) -> dict:
        """Flatten to JSON-safe values for structlog."""
        return self.model_dump(mode="json")


class AuditEventBuilder:
    """
    Shortcuts for the events the expense flows emit.

    Usage:
        event = AuditEventBuilder.expense_added(expense_id, "Food", 12.5)
        event = AuditEventBuilder.expense_not_found(expense_id, "delete")
    """

    @staticmethod
    def expense_added(
        expense_id: str,
        category: str,
        amount: float,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            entity_type="expense",
            entity_id=expense_id,
            description=f"Expense added: {category} - {amount:.2f}",
            details={
                "category": category,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_updated(
        expense_id: str,
        changed_fields: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_UPDATED,
            entity_type="expense",
            entity_id=expense_id,
            description=f"Expense updated: {', '.join(changed_fields) or 'no fields'}",
            details={
                "changed_fields": changed_fields,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(expense_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            description="Expense deleted",
            is_user_action=True,
        )

    @staticmethod
    def expenses_cleared(removed_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSES_CLEARED,
            severity=AuditSeverity.WARNING,
            entity_type="collection",
            description=f"All expenses cleared ({removed_count} removed)",
            details={
                "removed_count": removed_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_not_found(expense_id: str, operation: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            entity_id=expense_id,
            description=f"Cannot {operation} expense: not found",
            details={
                "operation": operation,
            },
            is_user_action=True,
        )

    @staticmethod
    def input_rejected(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INPUT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            description="Expense input rejected",
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def expenses_exported(row_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSES_EXPORTED,
            entity_type="collection",
            description=f"Exported {row_count} expenses to CSV",
            details={
                "row_count": row_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def persistence_degraded(
        error_message: str,
        operation: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_DEGRADED,
            severity=AuditSeverity.ERROR,
            entity_type="collection",
            description=f"Changes from {operation} were not saved to disk",
            error_message=error_message,
            details={
                "operation": operation,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )
