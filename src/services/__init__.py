"""Services package."""

from src.services.directory import CategoryDirectory, MemberDirectory
from src.services.storage import (
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

__all__ = [
    # Directories
    "CategoryDirectory",
    "MemberDirectory",
    # Storage services
    "AuditStorageInterface",
    "BudgetStore",
    "CalendarStorageInterface",
    "CategoryRegistry",
    "ConnectionError",
    "DuplicateError",
    "ExpenseStorageInterface",
    "MemberRegistry",
    "NotFoundError",
    "StorageError",
]
