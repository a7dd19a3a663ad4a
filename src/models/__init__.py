"""
Data Models Package

This package contains all Pydantic models used in the Household Expenses system.
All data flowing through the system must conform to these schemas.
"""

from src.models.household import (
    CalendarEntry,
    CalendarEntryPatch,
    CalendarEntryView,
    Category,
    CategoryMonthlySummary,
    CategoryMonthlyTotal,
    Expense,
    ExpenseFilter,
    ExpenseOrder,
    ExpensePatch,
    Member,
    MonthlySummary,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Household models
    "CalendarEntry",
    "CalendarEntryPatch",
    "CalendarEntryView",
    "Category",
    "CategoryMonthlySummary",
    "CategoryMonthlyTotal",
    "Expense",
    "ExpenseFilter",
    "ExpenseOrder",
    "ExpensePatch",
    "Member",
    "MonthlySummary",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
