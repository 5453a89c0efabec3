"""
Main Orchestrator for Expense Tracker

This module ties the store, storage backend and audit logger together
and exposes the operations the UI calls.

DESIGN DECISION: The orchestrator enforces the boundaries:
- User input is validated before it reaches the store
- "Not found" from the store becomes a NotFoundError the UI can show
- Every change is audited, including changes that failed to reach disk

The store is synchronous. ExpenseFlow offers async methods so the UI can
treat every action the same way, but nothing here actually waits.
"""

from datetime import date
from typing import Optional, Union

from expense_tracker.audit import AuditLogger, get_logger
from expense_tracker.config import AppSettings, StorageSettings, get_settings
from expense_tracker.models.audit import AuditEvent
from expense_tracker.models.expense import (
    Expense,
    ExpenseCreate,
    ExpenseFilters,
    ExpenseFormData,
    ExpenseSummary,
    ExpenseUpdate,
    PersistenceStatus,
)
from expense_tracker.services.storage import (
    InMemoryAuditStorage,
    InMemoryStorage,
    KeyValueStorageInterface,
    LocalFileStorage,
    NotFoundError,
    PersistenceDegradedError,
    StorageError,
)
from expense_tracker.store import ExpenseStore


logger = get_logger(__name__)


class ExpenseFlow:
    """
    Orchestrates every expense action the UI can take.

    Flow for a change:
    1. Validate input (form data or partial update)
    2. Apply it to the store
    3. Translate a missing id into NotFoundError
    4. Audit the change, and audit a failed save separately
    """

    def __init__(
        self,
        store: ExpenseStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger

    @property
    def store(self) -> ExpenseStore:
        return self._store

    @property
    def persistence_status(self) -> PersistenceStatus:
        return self._store.persistence_status

    async def _check_persisted(self, operation: str) -> None:
        """
        Audit a save that just failed.

        A successful write always resets the status to healthy, so an
        unhealthy status right after a mutation belongs to that mutation.
        """
        status = self._store.persistence_status
        if not status.healthy and self._audit_logger:
            await self._audit_logger.log_persistence_degraded(
                error_message=status.last_error or "unknown error",
                operation=operation,
            )

    async def _degraded(self, error: PersistenceDegradedError) -> None:
        if self._audit_logger:
            await self._audit_logger.log_persistence_degraded(
                error_message=str(error),
                operation=error.operation,
            )

    async def load_expenses(
        self,
        filters: Optional[ExpenseFilters] = None,
    ) -> list[Expense]:
        """List expenses, newest first, narrowed by optional filters."""
        return self._store.list_expenses(filters)

    async def get_expense(self, expense_id: str) -> Optional[Expense]:
        return self._store.get_expense(expense_id)

    async def add_expense(
        self,
        data: Union[ExpenseFormData, ExpenseCreate],
    ) -> Expense:
        """
        Add an expense from validated form input.

        Raises:
            PersistenceDegradedError: Strict mode only; the expense is still added
        """
        if isinstance(data, ExpenseFormData):
            data = data.to_create()

        try:
            expense = self._store.add_expense(data)
        except PersistenceDegradedError as e:
            await self._degraded(e)
            raise

        if self._audit_logger:
            await self._audit_logger.log_expense_added(
                expense_id=expense.id,
                category=expense.category.value,
                amount=expense.amount,
            )
        await self._check_persisted("add")
        return expense

    async def update_expense(
        self,
        expense_id: str,
        updates: Union[ExpenseFormData, ExpenseUpdate, dict],
    ) -> Expense:
        """
        Apply a partial update, or a full edit from validated form input.

        Raises:
            NotFoundError: If no expense has this id
            PersistenceDegradedError: Strict mode only; the update still applied
        """
        if isinstance(updates, ExpenseFormData):
            updates = updates.to_update()
        elif not isinstance(updates, ExpenseUpdate):
            updates = ExpenseUpdate.model_validate(updates)

        try:
            expense = self._store.update_expense(expense_id, updates)
        except PersistenceDegradedError as e:
            await self._degraded(e)
            raise

        if expense is None:
            if self._audit_logger:
                await self._audit_logger.log_expense_not_found(expense_id, "update")
            raise NotFoundError(f"Expense not found: {expense_id}")

        if self._audit_logger:
            await self._audit_logger.log_expense_updated(
                expense_id=expense_id,
                changed_fields=sorted(updates.changes()),
            )
        await self._check_persisted("update")
        return expense

    async def delete_expense(self, expense_id: str) -> None:
        """
        Delete an expense.

        Raises:
            NotFoundError: If no expense has this id
            PersistenceDegradedError: Strict mode only; the delete still applied
        """
        try:
            removed = self._store.delete_expense(expense_id)
        except PersistenceDegradedError as e:
            await self._degraded(e)
            raise

        if not removed:
            if self._audit_logger:
                await self._audit_logger.log_expense_not_found(expense_id, "delete")
            raise NotFoundError(f"Expense not found: {expense_id}")

        if self._audit_logger:
            await self._audit_logger.log_expense_deleted(expense_id)
        await self._check_persisted("delete")

    async def get_summary(self, as_of: Optional[date] = None) -> ExpenseSummary:
        return self._store.get_summary(as_of)

    async def export_csv(self) -> str:
        """
        CSV of every expense, or '' when there is nothing to export.

        Building the content is not audited; call record_export once the
        user has actually downloaded it.
        """
        return self._store.export_csv()

    async def record_export(self) -> None:
        """Audit a completed download of the CSV export."""
        row_count = len(self._store)
        if row_count and self._audit_logger:
            await self._audit_logger.log_expenses_exported(row_count)

    async def clear_all(self) -> int:
        """
        Remove every expense.

        Returns:
            How many expenses were removed
        """
        removed_count = len(self._store)
        try:
            self._store.clear_all()
        except PersistenceDegradedError as e:
            await self._degraded(e)
            raise

        if self._audit_logger:
            await self._audit_logger.log_expenses_cleared(removed_count)
        await self._check_persisted("clear")
        return removed_count

    async def recent_activity(self, limit: int = 20) -> list[AuditEvent]:
        if not self._audit_logger:
            return []
        return await self._audit_logger.recent_events(limit=limit)


def create_storage_backend(
    storage_settings: StorageSettings,
) -> KeyValueStorageInterface:
    """
    Build the configured durable backend.

    Falls back to in-memory storage if the data directory is unusable,
    so the app still starts (nothing will survive a restart).
    """
    if storage_settings.backend == "memory":
        return InMemoryStorage()

    try:
        return LocalFileStorage(storage_settings.data_path)
    except StorageError as e:
        logger.warning(
            "file_storage_unavailable",
            data_dir=storage_settings.data_dir,
            error=str(e),
        )
        return InMemoryStorage()


def create_app_components(
    storage_settings: Optional[StorageSettings] = None,
    app_settings: Optional[AppSettings] = None,
) -> tuple[ExpenseFlow, ExpenseStore]:
    """
    Factory function to create all application components.

    Args:
        storage_settings: Storage configuration (from the environment if None)
        app_settings: App configuration (from the environment if None)

    Returns:
        (expense_flow, expense_store)
    """
    if storage_settings is None or app_settings is None:
        settings = get_settings()
        storage_settings = storage_settings or settings.storage
        app_settings = app_settings or settings.app

    storage = create_storage_backend(storage_settings)
    store = ExpenseStore(
        storage,
        storage_key=storage_settings.storage_key,
        strict_persistence=app_settings.strict_persistence,
    )
    audit_logger = AuditLogger(InMemoryAuditStorage())

    return ExpenseFlow(store, audit_logger), store
