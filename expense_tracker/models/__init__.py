"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker.
All data flowing through the system must conform to these schemas.
"""

from expense_tracker.models.expense import (
    EXPENSE_CATEGORIES,
    CategoryTotal,
    Expense,
    ExpenseCategory,
    ExpenseCreate,
    ExpenseFilters,
    ExpenseFormData,
    ExpenseSummary,
    ExpenseUpdate,
    PersistenceStatus,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "EXPENSE_CATEGORIES",
    "CategoryTotal",
    "Expense",
    "ExpenseCategory",
    "ExpenseCreate",
    "ExpenseFilters",
    "ExpenseFormData",
    "ExpenseSummary",
    "ExpenseUpdate",
    "PersistenceStatus",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
