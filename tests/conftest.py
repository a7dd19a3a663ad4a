"""Shared fixtures: a pinned clock and seeded in-memory backends."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from src.audit.logger import AuditLogger
from src.calendar_entries.store import CalendarEntryStore
from src.errors import TransportError
from src.expenses.ledger import ExpenseLedger
from src.models.household import Category, Member
from src.permissions.clock import FixedClock
from src.permissions.policies import EditWindowPolicy
from src.queries.aggregation import MonthlySummaryService
from src.services.directory import CategoryDirectory, MemberDirectory
from src.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryBudgetStore,
    InMemoryCalendarStorage,
    InMemoryCategoryRegistry,
    InMemoryExpenseStorage,
    InMemoryMemberRegistry,
)


T0 = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)


class FailingStore:
    """Stands in for any collaborator whose every call fails in transit."""

    def __init__(self, message: str = "remote store unreachable"):
        self.message = message

    def __getattr__(self, name):
        async def fail(*args, **kwargs):
            raise TransportError(self.message)
        return fail


@pytest.fixture
def clock():
    return FixedClock(T0)


@pytest.fixture
def policy():
    return EditWindowPolicy()


@pytest.fixture
def admin():
    return Member(id="m1", name="Asha", phone="9876543210", is_admin=True)


@pytest.fixture
def member():
    return Member(id="m2", name="Ravi", phone="9123456780")


@pytest.fixture
def category_registry():
    return InMemoryCategoryRegistry([
        Category(id="groceries", name="Groceries", color="#27ae60", allocated_amount=Decimal("500")),
        Category(id="rice", name="Rice", color="#2ecc71"),
        Category(id="oil", name="Oil"),
    ])


@pytest.fixture
def member_registry(admin, member):
    return InMemoryMemberRegistry([admin, member])


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def expense_storage():
    return InMemoryExpenseStorage()


@pytest.fixture
def calendar_storage():
    return InMemoryCalendarStorage()


@pytest.fixture
def budget():
    return InMemoryBudgetStore(Decimal("1000"))


@pytest.fixture
def categories(category_registry):
    return CategoryDirectory(category_registry)


@pytest.fixture
def members(member_registry):
    return MemberDirectory(member_registry)


@pytest.fixture
def ledger(expense_storage, policy, clock, audit_logger):
    return ExpenseLedger(
        expense_storage,
        policy=policy,
        clock=clock,
        audit_logger=audit_logger,
    )


@pytest.fixture
def calendar(calendar_storage, categories, policy, clock, audit_logger):
    return CalendarEntryStore(
        calendar_storage,
        categories,
        policy=policy,
        clock=clock,
        audit_logger=audit_logger,
    )


@pytest.fixture
def summaries(expense_storage, member_registry, budget, category_registry, audit_logger):
    return MonthlySummaryService(
        expenses=expense_storage,
        members=member_registry,
        budget=budget,
        categories=category_registry,
        audit_logger=audit_logger,
    )


@pytest.fixture
def failing():
    return FailingStore()
