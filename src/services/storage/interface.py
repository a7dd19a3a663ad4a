"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for offline mode and testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Just the operations the expense and calendar stores need.

Comment threads are not stored separately: they travel embedded in their
parent record. Saving an expense or a calendar entry saves its thread.

Categories and members belong to registries owned elsewhere; the core only
reads from them.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional
from uuid import UUID

from src.errors import NotFoundError, TransportError, ValidationError
from src.models.audit import AuditEvent
from src.models.household import CalendarEntry, Category, Expense, Member


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense storage operations.

    Any storage implementation (Google Sheets, in-memory, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def save_expense(self, expense: Expense) -> bool:
        """
        Save a new expense (with its comment thread).

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        """
        Retrieve an expense by its ID.

        Returns:
            The expense if found, None otherwise
        """
        pass

    @abstractmethod
    async def update_expense(self, expense: Expense) -> bool:
        """
        Replace a stored expense (including its thread).

        Raises:
            StorageError: If update fails
            NotFoundError: If expense doesn't exist
        """
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: UUID) -> bool:
        """
        Delete an expense and its thread.

        Returns:
            True if deleted, False if it was not there
        """
        pass

    @abstractmethod
    async def list_expenses(self) -> list[Expense]:
        """
        All stored expenses. Order is not guaranteed.
        """
        pass


class CalendarStorageInterface(ABC):
    """
    Abstract interface for calendar entry storage.
    """

    @abstractmethod
    async def save_entry(self, entry: CalendarEntry) -> bool:
        pass

    @abstractmethod
    async def get_entry(self, entry_id: UUID) -> Optional[CalendarEntry]:
        pass

    @abstractmethod
    async def update_entry(self, entry: CalendarEntry) -> bool:
        """
        Raises:
            NotFoundError: If entry doesn't exist
        """
        pass

    @abstractmethod
    async def delete_entry(self, entry_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_entries(self) -> list[CalendarEntry]:
        pass


class CategoryRegistry(ABC):
    """Read-only view of the category registry."""

    @abstractmethod
    async def get_category(self, category_id: str) -> Optional[Category]:
        pass

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        pass


class MemberRegistry(ABC):
    """Read-only view of the member registry."""

    @abstractmethod
    async def list_members(self) -> list[Member]:
        pass

    @abstractmethod
    async def count_members(self) -> int:
        pass


class BudgetStore(ABC):
    """
    Holds the household's monthly full amount (budget ceiling).
    """

    @abstractmethod
    async def get_full_amount(self) -> Decimal:
        """Current full amount. 0 when none has been configured."""
        pass

    @abstractmethod
    async def set_full_amount(self, amount: Decimal) -> bool:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity, in chronological order.
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(TransportError):
    """Base exception for storage operations."""
    pass


class DuplicateError(ValidationError):
    """Attempted to insert a duplicate entity (e.g. a reused phone number)."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


__all__ = [
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
