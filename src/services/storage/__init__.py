"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the production backend; the in-memory backend is used
offline and in tests.
"""

from src.services.storage.interface import (
    AuditStorageInterface,
    BudgetStore,
    CalendarStorageInterface,
    CategoryRegistry,
    ConnectionError,
    DuplicateError,
    ExpenseStorageInterface,
    MemberRegistry,
    NotFoundError,
    StorageError,
)
from src.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryBudgetStore,
    InMemoryCalendarStorage,
    InMemoryCategoryRegistry,
    InMemoryExpenseStorage,
    InMemoryMemberRegistry,
)
from src.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStore,
    GoogleSheetsCalendarStorage,
    GoogleSheetsCategoryRegistry,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsMemberRegistry,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BudgetStore",
    "CalendarStorageInterface",
    "CategoryRegistry",
    "ExpenseStorageInterface",
    "MemberRegistry",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryBudgetStore",
    "InMemoryCalendarStorage",
    "InMemoryCategoryRegistry",
    "InMemoryExpenseStorage",
    "InMemoryMemberRegistry",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBudgetStore",
    "GoogleSheetsCalendarStorage",
    "GoogleSheetsCategoryRegistry",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "GoogleSheetsMemberRegistry",
]
