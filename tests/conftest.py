"""Shared fixtures for the Expense Tracker tests."""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

import pytest

from expense_tracker.models.expense import ExpenseCategory, ExpenseCreate
from expense_tracker.services.storage import InMemoryStorage, StorageError
from expense_tracker.store import ExpenseStore


class FrozenClock:
    """A clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FlakyStorage(InMemoryStorage):
    """In-memory slots whose reads or writes can be made to fail."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.fail_reads = False
        self.fail_writes = False

    def read(self, key):
        if self.fail_reads:
            raise StorageError("disk unreadable")
        return super().read(key)

    def write(self, key, value):
        if self.fail_writes:
            raise StorageError("disk full")
        super().write(key, value)


def expense_data(
    amount: float = 10.0,
    category: ExpenseCategory = ExpenseCategory.FOOD,
    day: date = date(2024, 1, 1),
    description: str = "",
) -> ExpenseCreate:
    return ExpenseCreate(
        amount=amount,
        description=description,
        category=category,
        date=day,
    )


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def storage():
    return FlakyStorage()


@pytest.fixture
def store(storage, clock):
    return ExpenseStore(storage, clock=clock)
