"""
Expense Store

The single owner of the expense collection. Everything the UI shows is
read through here and every change is written through here.

Lifecycle:
1. Construct with a storage backend (nothing is read yet)
2. First access hydrates the collection from the durable slot
   (empty if the slot is missing, unreadable or corrupt)
3. Serve operations
4. Every mutation rewrites the whole collection to the slot

DESIGN DECISION: There is no module-level instance. The app builds one
store and passes it around, so tests and tools can run several side by side.

Storage failures never undo a mutation. A failed write leaves memory ahead
of disk and is reported through `persistence_status`; in strict mode it is
also raised as PersistenceDegradedError after the change has been applied.
"""

import calendar
import csv
import io
import json
import re
from datetime import date, datetime, timezone
from typing import Callable, Optional, Union
from uuid import uuid4

from pydantic import TypeAdapter, ValidationError

from expense_tracker.audit.logger import get_logger
from expense_tracker.models.expense import (
    CategoryTotal,
    Expense,
    ExpenseCategory,
    ExpenseCreate,
    ExpenseFilters,
    ExpenseSummary,
    ExpenseUpdate,
    PersistenceStatus,
)
from expense_tracker.services.storage.interface import (
    HydrationError,
    KeyValueStorageInterface,
    PersistenceDegradedError,
    StorageError,
)


DEFAULT_STORAGE_KEY = "expense-tracker-data"

CSV_HEADER = ["Date", "Description", "Category", "Amount"]

_EXPENSE_LIST = TypeAdapter(list[Expense])

# Integral amounts from here on are written in exponent form
_EXPONENT_THRESHOLD = 1e21
_EXPONENT_ZEROS = re.compile(r"e([+-])0+(?=\d)")

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid4().hex


def format_amount(amount: float) -> str:
    """
    Render an amount the way it is written to CSV.

    12 -> "12", 12.5 -> "12.5", 1e21 -> "1e+21", 1e-7 -> "1e-7"
    """
    if amount.is_integer() and abs(amount) < _EXPONENT_THRESHOLD:
        return str(int(amount))
    return _EXPONENT_ZEROS.sub(r"e\1", repr(amount))


def month_bounds(day: date) -> tuple[date, date]:
    """First and last calendar day of the month containing `day`."""
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def parse_collection(blob: str) -> list[Expense]:
    """
    Decode a stored collection.

    Raises:
        HydrationError: If the blob is not a JSON array of valid expenses
    """
    try:
        return _EXPENSE_LIST.validate_json(blob)
    except ValidationError as e:
        raise HydrationError(f"Stored expenses are unreadable: {e}") from e


class ExpenseStore:
    """
    In-memory expense collection backed by one durable key-value slot.

    Not thread-safe. One store per process is expected to own a slot;
    two stores writing the same slot get last-write-wins.
    """

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        storage_key: str = DEFAULT_STORAGE_KEY,
        strict_persistence: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        """
        Initialize the store.

        Args:
            storage: Backend holding the durable slot
            storage_key: Name of the slot
            strict_persistence: Raise PersistenceDegradedError when a write fails
            clock: Returns "now" for createdAt/updatedAt (UTC by default)
            id_factory: Returns fresh ids (uuid4 hex by default)
        """
        self._storage = storage
        self._storage_key = storage_key
        self._strict = strict_persistence
        self._clock = clock or _utcnow
        self._id_factory = id_factory or _new_id

        self._expenses: Optional[list[Expense]] = None
        self._hydration_error: Optional[str] = None
        self._status = PersistenceStatus()

    # ------------------------------------------------------------------
    # Loading and saving
    # ------------------------------------------------------------------

    @property
    def storage_key(self) -> str:
        return self._storage_key

    @property
    def storage(self) -> KeyValueStorageInterface:
        return self._storage

    @property
    def is_loaded(self) -> bool:
        return self._expenses is not None

    @property
    def hydration_error(self) -> Optional[str]:
        """Why the last hydration fell back to an empty collection, if it did."""
        return self._hydration_error

    @property
    def persistence_status(self) -> PersistenceStatus:
        """Whether the durable slot reflects the in-memory collection."""
        return self._status.model_copy()

    def _ensure_loaded(self) -> list[Expense]:
        if self._expenses is None:
            self._expenses = self._hydrate()
        return self._expenses

    def _hydrate(self) -> list[Expense]:
        """Read the slot. Any failure means "no prior data"."""
        self._hydration_error = None
        try:
            blob = self._storage.read(self._storage_key)
            if blob is None:
                return []
            expenses = parse_collection(blob)
        except StorageError as e:
            self._hydration_error = str(e)
            logger.warning(
                "expense_hydration_failed",
                storage_key=self._storage_key,
                error=str(e),
            )
            return []

        unique: list[Expense] = []
        seen: set[str] = set()
        for expense in expenses:
            if expense.id in seen:
                logger.warning(
                    "expense_duplicate_id_dropped",
                    storage_key=self._storage_key,
                    expense_id=expense.id,
                )
                continue
            seen.add(expense.id)
            unique.append(expense)

        logger.info(
            "expenses_hydrated",
            storage_key=self._storage_key,
            count=len(unique),
        )
        return unique

    def _persist(self, operation: str) -> bool:
        """
        Overwrite the slot with the full collection.

        Returns True on success. On failure the in-memory state stands.
        """
        payload = json.dumps([e.to_storage_dict() for e in self._ensure_loaded()])
        now = self._now()
        try:
            self._storage.write(self._storage_key, payload)
        except Exception as e:
            # Backends should raise StorageError, but a failed save must
            # never take the in-memory change down with it
            self._status = PersistenceStatus(
                healthy=False,
                last_error=str(e),
                failed_at=now,
                last_saved_at=self._status.last_saved_at,
            )
            logger.error(
                "expense_persist_failed",
                storage_key=self._storage_key,
                operation=operation,
                error=str(e),
            )
            if self._strict:
                raise PersistenceDegradedError(
                    f"Could not save after {operation}: {e}",
                    operation=operation,
                ) from e
            return False

        self._status = PersistenceStatus(healthy=True, last_saved_at=now)
        return True

    def _now(self) -> datetime:
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now

    def _index_of(self, expense_id: str) -> Optional[int]:
        for index, expense in enumerate(self._ensure_loaded()):
            if expense.id == expense_id:
                return index
        return None

    def _generate_id(self) -> str:
        existing = {e.id for e in self._ensure_loaded()}
        expense_id = self._id_factory()
        while expense_id in existing:
            expense_id = self._id_factory()
        return expense_id

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def add_expense(self, data: Union[ExpenseCreate, dict]) -> Expense:
        """
        Add a new expense.

        The store assigns id, createdAt and updatedAt; any such keys in
        `data` are ignored.

        Returns:
            The stored expense
        """
        if not isinstance(data, ExpenseCreate):
            data = ExpenseCreate.model_validate(data)

        expenses = self._ensure_loaded()
        now = self._now()
        expense = Expense(
            id=self._generate_id(),
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )
        expenses.append(expense)
        self._persist("add")
        return expense.model_copy()

    def update_expense(
        self,
        expense_id: str,
        updates: Union[ExpenseUpdate, dict],
    ) -> Optional[Expense]:
        """
        Merge partial fields onto an existing expense.

        Fields not present in `updates` are left alone. id and createdAt
        cannot be changed here.

        Returns:
            The updated expense, or None if no expense has this id
        """
        if not isinstance(updates, ExpenseUpdate):
            updates = ExpenseUpdate.model_validate(updates)

        expenses = self._ensure_loaded()
        index = self._index_of(expense_id)
        if index is None:
            return None

        existing = expenses[index]
        merged = existing.model_dump()
        merged.update(updates.changes())
        # A clock that stepped backwards must not break updatedAt >= createdAt
        merged["updated_at"] = max(self._now(), existing.created_at)

        updated = Expense.model_validate(merged)
        expenses[index] = updated
        self._persist("update")
        return updated.model_copy()

    def delete_expense(self, expense_id: str) -> bool:
        """
        Permanently remove an expense.

        Returns:
            True if an expense was removed, False if the id was unknown
        """
        expenses = self._ensure_loaded()
        index = self._index_of(expense_id)
        if index is None:
            return False

        del expenses[index]
        self._persist("delete")
        return True

    def get_expense(self, expense_id: str) -> Optional[Expense]:
        """Look up one expense by id."""
        index = self._index_of(expense_id)
        if index is None:
            return None
        return self._ensure_loaded()[index].model_copy()

    def clear_all(self) -> None:
        """Remove every expense and save the empty collection. Irreversible."""
        self._ensure_loaded().clear()
        self._persist("clear")

    def __len__(self) -> int:
        return len(self._ensure_loaded())

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_expenses(
        self,
        filters: Optional[Union[ExpenseFilters, dict]] = None,
    ) -> list[Expense]:
        """
        List expenses matching every given filter, newest date first.

        Expenses sharing a date keep their collection (insertion) order.
        """
        if filters is not None and not isinstance(filters, ExpenseFilters):
            filters = ExpenseFilters.model_validate(filters)

        expenses = self._ensure_loaded()
        if filters is not None and not filters.is_empty:
            matching = [e for e in expenses if filters.matches(e)]
        else:
            matching = list(expenses)

        # sorted() is stable with reverse=True, which keeps ties in order
        matching = sorted(matching, key=lambda e: e.date, reverse=True)
        return [e.model_copy() for e in matching]

    def get_summary(self, as_of: Optional[date] = None) -> ExpenseSummary:
        """
        Totals over the whole collection.

        Args:
            as_of: Day whose calendar month counts as "this month"
                   (defaults to today, local time)
        """
        expenses = self._ensure_loaded()
        month_start, month_end = month_bounds(as_of or date.today())

        total = sum(e.amount for e in expenses)
        monthly_total = sum(
            e.amount for e in expenses
            if month_start <= e.date <= month_end
        )

        breakdown = {category: 0.0 for category in ExpenseCategory}
        for expense in expenses:
            breakdown[expense.category] += expense.amount

        top_categories = [
            CategoryTotal(
                category=category,
                amount=amount,
                percentage=(amount / total) * 100 if total > 0 else 0.0,
            )
            for category, amount in breakdown.items()
        ]
        top_categories.sort(key=lambda c: c.amount, reverse=True)

        return ExpenseSummary(
            total=total,
            monthly_total=monthly_total,
            category_breakdown=breakdown,
            top_categories=top_categories,
        )

    def export_csv(self) -> str:
        """
        Export every expense as CSV, in collection order.

        All fields are double-quoted and embedded quotes are doubled.
        Rows are joined with '\\n' and there is no trailing newline.

        Returns:
            The CSV text, or '' if there are no expenses
        """
        expenses = self._ensure_loaded()
        if not expenses:
            return ""

        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for expense in expenses:
            writer.writerow([
                expense.date.isoformat(),
                expense.description,
                expense.category.value,
                format_amount(expense.amount),
            ])
        return buffer.getvalue().removesuffix("\n")
