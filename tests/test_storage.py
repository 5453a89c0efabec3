"""
Tests for the storage backends

Test strategy:
1. Local file slots inside pytest's tmp_path
2. In-memory slots and audit storage
3. A store running on real files end to end
"""

import asyncio
import json
import shutil

import pytest

from expense_tracker.models.audit import AuditEventBuilder
from expense_tracker.models.expense import ExpenseCategory
from expense_tracker.services.storage import (
    InMemoryAuditStorage,
    InMemoryStorage,
    LocalFileStorage,
    StorageError,
)
from expense_tracker.store import DEFAULT_STORAGE_KEY, ExpenseStore

from tests.conftest import expense_data


class TestLocalFileStorage:
    """Tests for LocalFileStorage."""

    def test_missing_slot_reads_none(self, tmp_path):
        assert LocalFileStorage(tmp_path).read("nothing") is None

    def test_write_then_read(self, tmp_path):
        storage = LocalFileStorage(tmp_path)
        storage.write("slot", '["a"]')

        assert storage.read("slot") == '["a"]'
        assert (tmp_path / "slot.json").read_text(encoding="utf-8") == '["a"]'

    def test_write_replaces_whole_value(self, tmp_path):
        storage = LocalFileStorage(tmp_path)
        storage.write("slot", "x" * 100)
        storage.write("slot", "y")
        assert storage.read("slot") == "y"

    def test_write_leaves_no_temp_files(self, tmp_path):
        storage = LocalFileStorage(tmp_path)
        storage.write("slot", "value")
        assert [p.name for p in tmp_path.iterdir()] == ["slot.json"]

    def test_creates_data_dir(self, tmp_path):
        LocalFileStorage(tmp_path / "nested" / "data")
        assert (tmp_path / "nested" / "data").is_dir()

    def test_data_dir_that_is_a_file(self, tmp_path):
        target = tmp_path / "taken"
        target.write_text("not a directory")
        with pytest.raises(StorageError):
            LocalFileStorage(target)

    def test_write_failure_raises_storage_error(self, tmp_path):
        data_dir = tmp_path / "data"
        storage = LocalFileStorage(data_dir)
        shutil.rmtree(data_dir)

        with pytest.raises(StorageError):
            storage.write("slot", "value")

    def test_unreadable_slot_raises_storage_error(self, tmp_path):
        (tmp_path / "slot.json").mkdir()
        with pytest.raises(StorageError):
            LocalFileStorage(tmp_path).read("slot")

    @pytest.mark.parametrize("key", ["", "../escape", "a/b", ".."])
    def test_invalid_keys_rejected(self, tmp_path, key):
        with pytest.raises(StorageError):
            LocalFileStorage(tmp_path).read(key)

    def test_delete(self, tmp_path):
        storage = LocalFileStorage(tmp_path)
        storage.write("slot", "value")

        assert storage.delete("slot") is True
        assert storage.read("slot") is None
        assert storage.delete("slot") is False

    def test_describe_mentions_directory(self, tmp_path):
        assert str(tmp_path.resolve()) in LocalFileStorage(tmp_path).describe()


class TestInMemoryStorage:
    """Tests for InMemoryStorage."""

    def test_read_write_delete(self):
        storage = InMemoryStorage({"seed": "1"})
        assert storage.read("seed") == "1"

        storage.write("seed", "2")
        assert storage.read("seed") == "2"

        assert storage.delete("seed") is True
        assert storage.delete("seed") is False
        assert storage.read("seed") is None


class TestInMemoryAuditStorage:
    """Tests for InMemoryAuditStorage."""

    def test_recent_events_newest_first(self):
        storage = InMemoryAuditStorage()
        first = AuditEventBuilder.expense_deleted("a")
        second = AuditEventBuilder.expense_deleted("b")
        asyncio.run(storage.append_event(first))
        asyncio.run(storage.append_event(second))

        events = asyncio.run(storage.get_recent_events())
        assert [e.entity_id for e in events] == ["b", "a"]

    def test_oldest_events_fall_off(self):
        storage = InMemoryAuditStorage(max_events=2)
        for expense_id in ["a", "b", "c"]:
            asyncio.run(storage.append_event(AuditEventBuilder.expense_deleted(expense_id)))

        events = asyncio.run(storage.get_recent_events(limit=10))
        assert [e.entity_id for e in events] == ["c", "b"]


class TestStoreOnLocalFiles:
    """The store writing real files."""

    def test_collection_survives_restart(self, tmp_path, clock):
        store = ExpenseStore(LocalFileStorage(tmp_path), clock=clock)
        kept = store.add_expense(expense_data(12.5, ExpenseCategory.FOOD, description="Lunch"))
        dropped = store.add_expense(expense_data(3, ExpenseCategory.OTHER))
        store.delete_expense(dropped.id)

        reopened = ExpenseStore(LocalFileStorage(tmp_path), clock=clock)

        assert reopened.list_expenses() == [kept]
        blob = json.loads((tmp_path / f"{DEFAULT_STORAGE_KEY}.json").read_text(encoding="utf-8"))
        assert [record["id"] for record in blob] == [kept.id]

    def test_custom_storage_key(self, tmp_path, clock):
        store = ExpenseStore(LocalFileStorage(tmp_path), storage_key="household", clock=clock)
        store.add_expense(expense_data())
        assert (tmp_path / "household.json").exists()
