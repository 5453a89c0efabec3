"""
Tests for ExpenseFlow and the component factory

Test strategy:
1. Flows run against in-memory storage (asyncio.run, no event loop plugin)
2. Not-found and failed saves are checked through the audit trail
"""

import asyncio
from datetime import date

import pytest
from pydantic import ValidationError

from expense_tracker.audit import AuditLogger
from expense_tracker.config import AppSettings, StorageSettings
from expense_tracker.models.audit import AuditEventType
from expense_tracker.models.expense import (
    ExpenseCategory,
    ExpenseFilters,
    ExpenseFormData,
    ExpenseUpdate,
)
from expense_tracker.orchestrator import ExpenseFlow, create_app_components
from expense_tracker.services.storage import (
    InMemoryAuditStorage,
    InMemoryStorage,
    LocalFileStorage,
    NotFoundError,
    PersistenceDegradedError,
)
from expense_tracker.store import ExpenseStore

from tests.conftest import expense_data


def event_types(flow: ExpenseFlow) -> list[AuditEventType]:
    """Audit event types, oldest first."""
    events = asyncio.run(flow.recent_activity(limit=100))
    return [e.event_type for e in reversed(events)]


@pytest.fixture
def flow(store):
    return ExpenseFlow(store, AuditLogger(InMemoryAuditStorage()))


class TestExpenseFlow:
    """Tests for the async facade."""

    def test_add_from_form(self, flow):
        """Form input is validated, stored and audited."""
        form = ExpenseFormData(
            amount="12.50",
            description="Lunch",
            category=ExpenseCategory.FOOD,
            date=date(2024, 1, 1),
        )
        expense = asyncio.run(flow.add_expense(form))

        assert expense.amount == 12.5
        assert asyncio.run(flow.get_expense(expense.id)) == expense
        assert event_types(flow) == [AuditEventType.EXPENSE_ADDED]

    def test_load_expenses_with_filters(self, flow):
        asyncio.run(flow.add_expense(expense_data(1, ExpenseCategory.FOOD)))
        asyncio.run(flow.add_expense(expense_data(2, ExpenseCategory.BILLS)))

        result = asyncio.run(flow.load_expenses(ExpenseFilters(category=ExpenseCategory.BILLS)))
        assert [e.amount for e in result] == [2]

    def test_update_expense(self, flow):
        expense = asyncio.run(flow.add_expense(expense_data(1)))

        updated = asyncio.run(flow.update_expense(expense.id, {"amount": 4, "description": "More"}))

        assert updated.amount == 4
        events = asyncio.run(flow.recent_activity())
        assert events[0].event_type == AuditEventType.EXPENSE_UPDATED
        assert events[0].details["changed_fields"] == ["amount", "description"]

    def test_update_from_form(self, flow):
        """Edits from the form replace every field."""
        expense = asyncio.run(flow.add_expense(expense_data(1, description="Old")))
        form = ExpenseFormData(
            amount="7.25",
            description=" Dinner ",
            category=ExpenseCategory.ENTERTAINMENT,
            date=date(2024, 2, 3),
        )

        updated = asyncio.run(flow.update_expense(expense.id, form))

        assert updated.amount == 7.25
        assert updated.description == "Dinner"
        assert updated.category == ExpenseCategory.ENTERTAINMENT
        assert updated.date == date(2024, 2, 3)

    def test_edit_form_rejects_blank_description(self):
        """Edits are held to the same rules as new expenses."""
        with pytest.raises(ValidationError):
            ExpenseFormData(amount="5", description="   ").to_update()
        with pytest.raises(ValidationError):
            ExpenseFormData(amount="5", description="x" * 501)

    def test_update_unknown_raises_not_found(self, flow):
        """Absence becomes a user-facing error."""
        with pytest.raises(NotFoundError, match="Expense not found: missing"):
            asyncio.run(flow.update_expense("missing", ExpenseUpdate(amount=1)))
        assert event_types(flow) == [AuditEventType.EXPENSE_NOT_FOUND]

    def test_delete_expense(self, flow):
        expense = asyncio.run(flow.add_expense(expense_data()))
        asyncio.run(flow.delete_expense(expense.id))

        assert asyncio.run(flow.get_expense(expense.id)) is None
        assert event_types(flow)[-1] == AuditEventType.EXPENSE_DELETED

    def test_delete_unknown_raises_not_found(self, flow):
        with pytest.raises(NotFoundError):
            asyncio.run(flow.delete_expense("missing"))

    def test_summary(self, flow):
        asyncio.run(flow.add_expense(expense_data(100, ExpenseCategory.FOOD)))
        asyncio.run(flow.add_expense(expense_data(50, ExpenseCategory.BILLS)))

        summary = asyncio.run(flow.get_summary(as_of=date(2024, 1, 15)))
        assert summary.total == 150
        assert summary.monthly_total == 150

    def test_building_export_writes_no_audit_event(self, flow):
        """Rendering the export button must not count as an export."""
        asyncio.run(flow.add_expense(expense_data(description="Lunch")))

        for _ in range(3):
            content = asyncio.run(flow.export_csv())

        assert content.startswith('"Date","Description","Category","Amount"\n')
        assert event_types(flow) == [AuditEventType.EXPENSE_ADDED]

    def test_record_export_audits_download(self, flow):
        asyncio.run(flow.add_expense(expense_data()))
        asyncio.run(flow.add_expense(expense_data()))

        asyncio.run(flow.record_export())

        events = asyncio.run(flow.recent_activity())
        assert events[0].event_type == AuditEventType.EXPENSES_EXPORTED
        assert events[0].details["row_count"] == 2

    def test_record_export_of_empty_collection_is_not_audited(self, flow):
        asyncio.run(flow.record_export())
        assert event_types(flow) == []

    def test_clear_all_returns_count(self, flow):
        asyncio.run(flow.add_expense(expense_data()))
        asyncio.run(flow.add_expense(expense_data()))

        assert asyncio.run(flow.clear_all()) == 2
        assert asyncio.run(flow.load_expenses()) == []
        assert event_types(flow)[-1] == AuditEventType.EXPENSES_CLEARED

    def test_failed_save_is_audited(self, flow, storage):
        """A save that failed shows up in the audit trail and status."""
        storage.fail_writes = True

        expense = asyncio.run(flow.add_expense(expense_data()))

        assert asyncio.run(flow.get_expense(expense.id)) is not None
        assert flow.persistence_status.healthy is False
        assert event_types(flow) == [
            AuditEventType.EXPENSE_ADDED,
            AuditEventType.PERSISTENCE_DEGRADED,
        ]

    def test_strict_mode_raises_and_audits(self, storage, clock):
        store = ExpenseStore(storage, clock=clock, strict_persistence=True)
        flow = ExpenseFlow(store, AuditLogger(InMemoryAuditStorage()))
        storage.fail_writes = True

        with pytest.raises(PersistenceDegradedError):
            asyncio.run(flow.add_expense(expense_data()))

        assert len(store) == 1
        assert event_types(flow) == [AuditEventType.PERSISTENCE_DEGRADED]

    def test_works_without_audit_logger(self, store):
        flow = ExpenseFlow(store)
        expense = asyncio.run(flow.add_expense(expense_data()))

        asyncio.run(flow.delete_expense(expense.id))

        assert asyncio.run(flow.recent_activity()) == []
        with pytest.raises(NotFoundError):
            asyncio.run(flow.delete_expense(expense.id))


class TestCreateAppComponents:
    """Tests for the component factory."""

    def test_memory_backend(self):
        flow, store = create_app_components(
            StorageSettings(backend="memory"),
            AppSettings(),
        )
        assert isinstance(store.storage, InMemoryStorage)
        assert flow.store is store

    def test_file_backend(self, tmp_path):
        flow, store = create_app_components(
            StorageSettings(backend="file", data_dir=str(tmp_path), storage_key="mine"),
            AppSettings(strict_persistence=True),
        )
        asyncio.run(flow.add_expense(expense_data()))

        assert isinstance(store.storage, LocalFileStorage)
        assert (tmp_path / "mine.json").exists()

    def test_unusable_data_dir_falls_back_to_memory(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        _, store = create_app_components(
            StorageSettings(backend="file", data_dir=str(blocker)),
            AppSettings(),
        )
        assert isinstance(store.storage, InMemoryStorage)
