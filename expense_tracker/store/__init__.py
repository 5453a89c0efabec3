"""Expense store package."""

from expense_tracker.store.expense_store import (
    CSV_HEADER,
    DEFAULT_STORAGE_KEY,
    ExpenseStore,
    format_amount,
    month_bounds,
    parse_collection,
)

__all__ = [
    "CSV_HEADER",
    "DEFAULT_STORAGE_KEY",
    "ExpenseStore",
    "format_amount",
    "month_bounds",
    "parse_collection",
]
