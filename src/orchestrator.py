"""
Main Orchestrator for Household Expenses

This module ties together all the components: storage backends, the
expense ledger, the calendar entry store, the summary service and the
audit logger.

DESIGN DECISION: The orchestrator picks the storage backend once, at
startup:
- Google Sheets when it is configured and reachable
- In-memory otherwise (offline mode), seeded with the default categories

Nothing above this module knows which backend is in use.
"""

from decimal import Decimal
from typing import Optional

import structlog

from src.audit import AuditLogger
from src.calendar_entries import CalendarEntryStore
from src.config import get_settings
from src.expenses import ExpenseLedger
from src.models.household import Category
from src.permissions import AdminRolePolicy, Clock, EditWindowPolicy, SystemClock
from src.queries import AggregationEngine, MonthlySummaryService
from src.services.directory import CategoryDirectory, MemberDirectory
from src.services.storage import (
    AuditStorageInterface,
    BudgetStore,
    CalendarStorageInterface,
    CategoryRegistry,
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStore,
    GoogleSheetsCalendarStorage,
    GoogleSheetsCategoryRegistry,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsMemberRegistry,
    InMemoryAuditStorage,
    InMemoryBudgetStore,
    InMemoryCalendarStorage,
    InMemoryCategoryRegistry,
    InMemoryExpenseStorage,
    InMemoryMemberRegistry,
    MemberRegistry,
)


logger = structlog.get_logger(__name__)


# Seeded when running without a remote store
DEFAULT_CATEGORIES = [
    Category(id="oil", name="Oil", color="#f39c12"),
    Category(id="current-bill", name="Current Bill", color="#3498db"),
    Category(id="rice", name="Rice", color="#2ecc71"),
]


class StorageBundle:
    """One backend's worth of collaborators."""

    def __init__(
        self,
        expenses: ExpenseStorageInterface,
        calendar: CalendarStorageInterface,
        categories: CategoryRegistry,
        members: MemberRegistry,
        budget: BudgetStore,
        audit: Optional[AuditStorageInterface],
        mode: str,
    ):
        self.expenses = expenses
        self.calendar = calendar
        self.categories = categories
        self.members = members
        self.budget = budget
        self.audit = audit
        self.mode = mode

    @classmethod
    def in_memory(cls) -> "StorageBundle":
        return cls(
            expenses=InMemoryExpenseStorage(),
            calendar=InMemoryCalendarStorage(),
            categories=InMemoryCategoryRegistry(DEFAULT_CATEGORIES),
            members=InMemoryMemberRegistry(),
            budget=InMemoryBudgetStore(Decimal("0")),
            audit=InMemoryAuditStorage(),
            mode="in-memory",
        )

    @classmethod
    def google_sheets(cls, client: Optional[GoogleSheetsClient] = None) -> "StorageBundle":
        client = client or GoogleSheetsClient()
        # Fail fast here rather than on the first user action
        client.get_spreadsheet()
        return cls(
            expenses=GoogleSheetsExpenseStorage(client),
            calendar=GoogleSheetsCalendarStorage(client),
            categories=GoogleSheetsCategoryRegistry(client),
            members=GoogleSheetsMemberRegistry(client),
            budget=GoogleSheetsBudgetStore(client),
            audit=GoogleSheetsAuditStorage(client),
            mode="google-sheets",
        )


class AppComponents:
    """
    Everything the UI talks to.
    """

    def __init__(
        self,
        storage: StorageBundle,
        clock: Optional[Clock] = None,
        policy: Optional[EditWindowPolicy] = None,
    ):
        settings = get_settings().app
        self.storage = storage
        self.clock = clock or SystemClock()
        self.policy = policy or EditWindowPolicy.from_settings(settings)
        self.audit_logger = AuditLogger(storage.audit)

        self.categories = CategoryDirectory(
            storage.categories,
            unknown_label=settings.unknown_category_label,
            default_color=settings.default_category_color,
        )
        self.members = MemberDirectory(storage.members)

        self.ledger = ExpenseLedger(
            storage.expenses,
            policy=self.policy,
            role_policy=AdminRolePolicy(),
            clock=self.clock,
            audit_logger=self.audit_logger,
        )
        self.calendar = CalendarEntryStore(
            storage.calendar,
            self.categories,
            policy=self.policy,
            clock=self.clock,
            audit_logger=self.audit_logger,
        )
        self.summaries = MonthlySummaryService(
            expenses=storage.expenses,
            members=storage.members,
            budget=storage.budget,
            categories=storage.categories,
            engine=AggregationEngine(),
            audit_logger=self.audit_logger,
        )

    @property
    def storage_mode(self) -> str:
        return self.storage.mode

    async def refresh(self) -> None:
        """Load both snapshots."""
        await self.ledger.refresh()
        await self.calendar.refresh()


def create_app_components(
    use_storage: bool = True,
    clock: Optional[Clock] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run fully in memory.
        clock: Clock override (tests pin time with FixedClock).
    """
    storage = None

    if use_storage:
        try:
            storage = StorageBundle.google_sheets()
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            storage = None

    if storage is None:
        storage = StorageBundle.in_memory()

    return AppComponents(storage, clock=clock)
