"""
Core Data Models for Household Expenses

These models define the strict schemas for everything the core stores or
derives. They are designed to:
1. Enforce invariants at construction (positive amounts, 10-digit phones)
2. Provide clear validation error messages
3. Be serializable for the remote store and for logging

DESIGN DECISION: Members and categories belong to external registries and
are referenced by opaque string ids. Expenses, calendar entries, comments
and replies are created here and get UUIDs.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from src.threads.comment_thread import Author, CommentThread, CommentView
from src.validation.validator import to_day


# Alias for annotations on classes that also have a field called "date".
DateType = date


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# REGISTRY-OWNED MODELS
# =============================================================================

class Member(BaseModel):
    """
    A member of the household.

    Phone numbers are unique across the registry and exactly 10 digits.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(
        ...,
        pattern=r"^\d{10}$",
        description="10-digit phone number (unique)"
    )
    is_admin: bool = False
    added_date: datetime = Field(default_factory=_utcnow)

    def as_author(self) -> Author:
        return Author(
            id=self.id,
            name=self.name,
            phone=self.phone,
            is_admin=self.is_admin,
        )


class Category(BaseModel):
    """An expense category, e.g. Rice, Oil, Current Bill."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    color: Optional[str] = Field(
        default=None,
        description="CSS colour, e.g. #2ecc71"
    )
    icon: Optional[str] = Field(
        default=None,
        description="Emoji or icon name"
    )
    icon_url: Optional[str] = None
    allocated_amount: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Monthly allocation for this category"
    )
    created_by: str = "system"


# =============================================================================
# EXPENSES
# =============================================================================

class Expense(BaseModel):
    """
    A single expense.

    ``date`` is the accrual date used for monthly bucketing.
    ``added_date`` is when it was recorded; the two are independent.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    date: date
    category_id: str = Field(..., min_length=1)
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Strictly positive amount"
    )
    description: str = Field(default="", max_length=500)
    added_by: str = Field(default="", max_length=100)
    added_date: datetime = Field(default_factory=_utcnow)
    updated_at: Optional[datetime] = None
    thread: Optional[CommentThread] = None

    @model_validator(mode='after')
    def attach_thread(self) -> 'Expense':
        """Every expense owns exactly one thread, keyed by its own id."""
        if self.thread is None:
            self.thread = CommentThread(parent_id=self.id)
        elif self.thread.parent_id != self.id:
            raise ValueError("Comment thread belongs to a different expense")
        return self


class ExpensePatch(BaseModel):
    """Fields an admin may change on an expense. Unset means unchanged."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    date: Optional[DateType] = None
    category_id: Optional[str] = Field(default=None, min_length=1)
    amount: Optional[Decimal] = Field(default=None, gt=0)
    description: Optional[str] = Field(default=None, max_length=500)


class ExpenseOrder(str, Enum):
    """Presentation order for filtered expenses."""
    RECENT_FIRST = "recent_first"      # default list view
    CHRONOLOGICAL = "chronological"    # detail / audit trail


class ExpenseFilter(BaseModel):
    """
    Expense filter. Every supplied predicate must match.

    Date bounds are inclusive at day granularity.
    """

    category_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def truncate_to_day(cls, v):
        """A bound with a time of day still means the whole day."""
        return to_day(v)

    @model_validator(mode='after')
    def validate_range(self) -> 'ExpenseFilter':
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date")
        return self

    def matches(self, expense: Expense) -> bool:
        if self.category_id and expense.category_id != self.category_id:
            return False
        if self.start_date and expense.date < self.start_date:
            return False
        if self.end_date and expense.date > self.end_date:
            return False
        return True


# =============================================================================
# CALENDAR ENTRIES
# =============================================================================

class CalendarEntry(BaseModel):
    """
    A dated, categorised note. Optionally carries a price.

    The date is fixed at creation. ``category_name`` is captured when the
    entry is created (and when its category changes) so that a later
    rename in the registry does not rewrite old entries.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    date: date
    category_id: str = Field(..., min_length=1)
    category_name: str = Field(default="Unknown")
    text: str = Field(..., min_length=1, max_length=1000)
    price: Optional[Decimal] = Field(default=None, ge=0)
    creator: Author = Field(default_factory=Author)
    created_at: datetime = Field(
        ...,
        description="Creation instant; anchors the edit window"
    )
    updated_at: Optional[datetime] = None
    thread: Optional[CommentThread] = None

    @model_validator(mode='after')
    def attach_thread(self) -> 'CalendarEntry':
        if self.thread is None:
            self.thread = CommentThread(parent_id=self.id)
        elif self.thread.parent_id != self.id:
            raise ValueError("Comment thread belongs to a different calendar entry")
        return self


class CalendarEntryPatch(BaseModel):
    """
    Editable fields of a calendar entry.

    There is no ``date`` field: entries cannot move to another day.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    text: Optional[str] = Field(default=None, max_length=1000)
    category_id: Optional[str] = Field(default=None, min_length=1)
    price: Optional[Decimal] = Field(default=None, ge=0)


class CalendarEntryView(BaseModel):
    """A calendar entry as shown at one instant. Never stored."""

    id: UUID
    date: date
    category_id: str
    category_name: str
    text: str
    price: Optional[Decimal] = None
    creator: Author
    created_at: datetime
    updated_at: Optional[datetime] = None
    can_edit: bool
    can_delete: bool
    remaining_label: str
    comments: list[CommentView] = Field(default_factory=list)


# =============================================================================
# DERIVED SUMMARIES
# =============================================================================

class MonthlySummary(BaseModel):
    """
    Monthly financial summary. Derived on demand, never persisted.

    ``month`` is 1-based (January = 1).
    """

    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=1)
    total_expenses: Decimal = Decimal("0")
    total_members: int = Field(default=0, ge=0)
    per_person_amount: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")

    @classmethod
    def empty(cls, month: int, year: int) -> "MonthlySummary":
        """The zero-valued summary shown when data cannot be loaded."""
        return cls(month=month, year=year)


class CategoryMonthlyTotal(BaseModel):
    """Spend for one category in one month."""

    category_id: str
    category_name: str
    color: str
    total: Decimal
    expense_count: int = Field(ge=0)
    allocated_amount: Optional[Decimal] = None

    @property
    def remaining(self) -> Optional[Decimal]:
        """Allocation left, if the category has one."""
        if self.allocated_amount is None:
            return None
        return self.allocated_amount - self.total


class CategoryMonthlySummary(BaseModel):
    """Per-category breakdown of a month, biggest spend first."""

    month: int = Field(..., ge=1, le=12)
    year: int
    categories: list[CategoryMonthlyTotal] = Field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return sum((c.total for c in self.categories), Decimal("0"))
