"""
Core Data Models for Expense Tracker

These models define the schemas for every expense flowing through the system.
They are designed to:
1. Enforce the closed category set at runtime
2. Keep id and timestamps out of caller hands
3. Serialize to the same JSON layout the durable slot has always used

DESIGN DECISION: Amount positivity is NOT a storage rule. It is enforced
upstream by ExpenseFormData, the model the UI builds from user input.
The stored Expense model accepts whatever the store was given.
"""

import datetime as dt
import math
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseCategory(str, Enum):
    """
    Supported expense categories.

    The labels are shared by storage, filters, summaries, export and the
    form, so the values are the display strings themselves. Declaration
    order is the canonical order for breakdowns.
    """
    FOOD = "Food"
    TRANSPORTATION = "Transportation"
    ENTERTAINMENT = "Entertainment"
    SHOPPING = "Shopping"
    BILLS = "Bills"
    OTHER = "Other"


EXPENSE_CATEGORIES: list[ExpenseCategory] = list(ExpenseCategory)


# =============================================================================
# CORE EXPENSE MODELS
# =============================================================================

class Expense(BaseModel):
    """
    A stored expense record.

    Field names are snake_case in Python and camelCase on the wire
    (createdAt, updatedAt), matching the persisted blob.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(
        ...,
        min_length=1,
        description="Unique expense ID, assigned by the store"
    )
    amount: float = Field(
        ...,
        description="Amount spent"
    )
    description: str = Field(
        default="",
        description="Free text description"
    )
    category: ExpenseCategory = Field(
        ...,
        description="Expense category"
    )
    date: dt.date = Field(
        ...,
        description="When the expense happened (not when it was recorded)"
    )
    created_at: dt.datetime = Field(
        ...,
        description="When the record was created"
    )
    updated_at: dt.datetime = Field(
        ...,
        description="Last mutation timestamp"
    )

    @field_validator('created_at', 'updated_at')
    @classmethod
    def assume_utc(cls, v: dt.datetime) -> dt.datetime:
        """Timestamps without an offset are taken to be UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=dt.timezone.utc)
        return v

    @model_validator(mode='after')
    def validate_timestamps(self) -> 'Expense':
        """A record can never be updated before it was created."""
        if self.updated_at < self.created_at:
            raise ValueError("updatedAt cannot be before createdAt")
        return self

    def to_storage_dict(self) -> dict:
        """JSON-ready dict using the persisted (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True)


class ExpenseCreate(BaseModel):
    """
    Fields a caller supplies when adding an expense.

    Anything else (id, createdAt, updatedAt) is ignored.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    amount: float
    description: str = ""
    category: ExpenseCategory
    date: dt.date


class ExpenseUpdate(BaseModel):
    """
    Partial update for an existing expense.

    Only fields that were explicitly set are applied. Identity and
    timestamp keys are dropped on parse, so they can never overwrite a record.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    amount: Optional[float] = None
    description: Optional[str] = None
    category: Optional[ExpenseCategory] = None
    date: Optional[dt.date] = None

    def changes(self) -> dict:
        """The fields to merge onto the stored record."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class ExpenseFormData(BaseModel):
    """
    Raw input from the expense form.

    The amount arrives as text, the way an HTML or Streamlit text input
    delivers it. This is where user input is checked before it reaches
    the store.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: str = Field(
        ...,
        description="Amount as typed by the user"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="What the money was spent on"
    )
    category: ExpenseCategory = ExpenseCategory.FOOD
    date: dt.date = Field(
        default_factory=dt.date.today,
        description="When the expense happened"
    )

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: str) -> str:
        """Amount must parse as a finite number greater than zero."""
        try:
            value = float(v)
        except ValueError:
            raise ValueError(f"Amount is not a number: {v!r}")
        if not math.isfinite(value) or value <= 0:
            raise ValueError("Amount must be greater than zero")
        return v

    def to_create(self) -> ExpenseCreate:
        """Convert validated form input into store input."""
        return ExpenseCreate(
            amount=float(self.amount),
            description=self.description,
            category=self.category,
            date=self.date,
        )

    def to_update(self) -> ExpenseUpdate:
        """Convert validated form input into a full edit of every field."""
        return ExpenseUpdate(
            amount=float(self.amount),
            description=self.description,
            category=self.category,
            date=self.date,
        )


# =============================================================================
# QUERY MODELS
# =============================================================================

class ExpenseFilters(BaseModel):
    """
    Optional filters for listing expenses.

    Every filter that is set must match (logical AND).
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    category: Optional[ExpenseCategory] = None
    date_from: Optional[dt.date] = Field(
        default=None,
        description="Include expenses on or after this date"
    )
    date_to: Optional[dt.date] = Field(
        default=None,
        description="Include expenses on or before this date"
    )
    search_query: Optional[str] = Field(
        default=None,
        description="Case-insensitive text matched against description or category"
    )

    @property
    def is_empty(self) -> bool:
        return (
            self.category is None
            and self.date_from is None
            and self.date_to is None
            and not self.search_query
        )

    def matches(self, expense: Expense) -> bool:
        """Check a single expense against every active filter."""
        if self.category is not None and expense.category != self.category:
            return False
        if self.date_from is not None and expense.date < self.date_from:
            return False
        if self.date_to is not None and expense.date > self.date_to:
            return False
        if self.search_query:
            needle = self.search_query.lower()
            if (
                needle not in expense.description.lower()
                and needle not in expense.category.value.lower()
            ):
                return False
        return True


# =============================================================================
# SUMMARY MODELS
# =============================================================================

class CategoryTotal(BaseModel):
    """One ranked category with its share of the grand total."""

    category: ExpenseCategory
    amount: float = 0.0
    percentage: float = Field(
        default=0.0,
        description="100 * amount / total, or 0 when total is 0"
    )


class ExpenseSummary(BaseModel):
    """
    Aggregates derived from the full collection.

    Never persisted, always computed on demand and independent of any
    active list filter.
    """

    total: float = 0.0
    monthly_total: float = 0.0
    category_breakdown: dict[ExpenseCategory, float] = Field(default_factory=dict)
    top_categories: list[CategoryTotal] = Field(default_factory=list)


class PersistenceStatus(BaseModel):
    """
    Health of the durable copy of the collection.

    When healthy is False, the in-memory collection holds changes the
    durable slot does not.
    """

    healthy: bool = True
    last_error: Optional[str] = None
    failed_at: Optional[dt.datetime] = None
    last_saved_at: Optional[dt.datetime] = None
