"""
In-Memory Storage Implementation

Used when Google Sheets is not configured (offline mode) and by the test
suite. Implements exactly the same interfaces as the Sheets backend.

DESIGN DECISION: Every read and every write goes through a deep copy.
Callers never hold a reference to stored state, so mutating a returned
expense does nothing until it is written back - the same behaviour a
remote store gives.
"""

from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from src.models.audit import AuditEvent
from src.models.household import CalendarEntry, Category, Expense, Member
from src.services.storage.interface import (
    AuditStorageInterface,
    BudgetStore,
    CalendarStorageInterface,
    CategoryRegistry,
    DuplicateError,
    ExpenseStorageInterface,
    MemberRegistry,
    NotFoundError,
)


class InMemoryExpenseStorage(ExpenseStorageInterface):
    """Expenses keyed by id."""

    def __init__(self, expenses: Iterable[Expense] = ()):
        self._expenses: dict[UUID, Expense] = {}
        for expense in expenses:
            self._expenses[expense.id] = expense.model_copy(deep=True)

    async def save_expense(self, expense: Expense) -> bool:
        if expense.id in self._expenses:
            raise DuplicateError(f"Expense already exists: {expense.id}")
        self._expenses[expense.id] = expense.model_copy(deep=True)
        return True

    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        expense = self._expenses.get(expense_id)
        return expense.model_copy(deep=True) if expense else None

    async def update_expense(self, expense: Expense) -> bool:
        if expense.id not in self._expenses:
            raise NotFoundError(f"Expense not found: {expense.id}")
        self._expenses[expense.id] = expense.model_copy(deep=True)
        return True

    async def delete_expense(self, expense_id: UUID) -> bool:
        return self._expenses.pop(expense_id, None) is not None

    async def list_expenses(self) -> list[Expense]:
        return [e.model_copy(deep=True) for e in self._expenses.values()]


class InMemoryCalendarStorage(CalendarStorageInterface):
    """Calendar entries keyed by id."""

    def __init__(self, entries: Iterable[CalendarEntry] = ()):
        self._entries: dict[UUID, CalendarEntry] = {}
        for entry in entries:
            self._entries[entry.id] = entry.model_copy(deep=True)

    async def save_entry(self, entry: CalendarEntry) -> bool:
        if entry.id in self._entries:
            raise DuplicateError(f"Calendar entry already exists: {entry.id}")
        self._entries[entry.id] = entry.model_copy(deep=True)
        return True

    async def get_entry(self, entry_id: UUID) -> Optional[CalendarEntry]:
        entry = self._entries.get(entry_id)
        return entry.model_copy(deep=True) if entry else None

    async def update_entry(self, entry: CalendarEntry) -> bool:
        if entry.id not in self._entries:
            raise NotFoundError(f"Calendar entry not found: {entry.id}")
        self._entries[entry.id] = entry.model_copy(deep=True)
        return True

    async def delete_entry(self, entry_id: UUID) -> bool:
        return self._entries.pop(entry_id, None) is not None

    async def list_entries(self) -> list[CalendarEntry]:
        return [e.model_copy(deep=True) for e in self._entries.values()]


class InMemoryCategoryRegistry(CategoryRegistry):
    """Category registry seeded at construction."""

    def __init__(self, categories: Iterable[Category] = ()):
        self._categories: dict[str, Category] = {}
        for category in categories:
            self.add_category(category)

    def add_category(self, category: Category) -> None:
        self._categories[category.id] = category.model_copy(deep=True)

    def remove_category(self, category_id: str) -> None:
        self._categories.pop(category_id, None)

    async def get_category(self, category_id: str) -> Optional[Category]:
        category = self._categories.get(category_id)
        return category.model_copy(deep=True) if category else None

    async def list_categories(self) -> list[Category]:
        return [c.model_copy(deep=True) for c in self._categories.values()]


class InMemoryMemberRegistry(MemberRegistry):
    """Member registry. Phone numbers are unique."""

    def __init__(self, members: Iterable[Member] = ()):
        self._members: dict[str, Member] = {}
        for member in members:
            self.add_member(member)

    def add_member(self, member: Member) -> None:
        """
        Raises:
            DuplicateError: If another member already uses the phone number
        """
        for existing in self._members.values():
            if existing.phone == member.phone and existing.id != member.id:
                raise DuplicateError(
                    f"Phone number already registered: {member.phone}"
                )
        self._members[member.id] = member.model_copy(deep=True)

    def remove_member(self, member_id: str) -> None:
        self._members.pop(member_id, None)

    async def list_members(self) -> list[Member]:
        return [m.model_copy(deep=True) for m in self._members.values()]

    async def count_members(self) -> int:
        return len(self._members)


class InMemoryBudgetStore(BudgetStore):
    """Holds the full amount in memory."""

    def __init__(self, full_amount: Decimal = Decimal("0")):
        self._full_amount = Decimal(full_amount)

    async def get_full_amount(self) -> Decimal:
        return self._full_amount

    async def set_full_amount(self, amount: Decimal) -> bool:
        self._full_amount = Decimal(amount)
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event.model_copy(deep=True))
        return True

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
