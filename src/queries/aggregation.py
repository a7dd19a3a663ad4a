"""
Monthly Aggregation

DESIGN DECISION: Aggregation is DETERMINISTIC and read-only.
The engine is a pure function of the expenses it is handed plus two
externally supplied numbers (member count and full amount). It never
talks to storage and never persists what it derives.

MonthlySummaryService is the thin async layer that fetches those inputs
from the collaborators. A summary is for display only, so a failing
collaborator degrades the summary to zero defaults instead of raising:

    expenses unavailable  -> MonthlySummary.empty(month, year)
    members unavailable   -> total_members = 0 (per-person = 0)
    budget unavailable    -> full_amount = 0

Each degradation is audited.

MONTH INDEXING: calendar pages hold a 0-based month index (January = 0).
Summaries use 1-based months (January = 1). The conversion happens here
and nowhere else: to_summary_month / to_month_index.
"""

import calendar
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from src.audit.logger import AuditLogger
from src.errors import TransportError, ValidationError
from src.models.household import (
    Category,
    CategoryMonthlySummary,
    CategoryMonthlyTotal,
    Expense,
    MonthlySummary,
)
from src.services.directory import (
    DEFAULT_CATEGORY_COLOR,
    UNKNOWN_CATEGORY,
)
from src.services.storage.interface import (
    BudgetStore,
    CategoryRegistry,
    ExpenseStorageInterface,
    MemberRegistry,
)
from src.validation.validator import require_non_negative_amount, to_decimal


CENTS = Decimal("0.01")
ZERO = Decimal("0")


# =============================================================================
# MONTH HELPERS
# =============================================================================

def check_month(month: int) -> int:
    """Validate a 1-based month."""
    if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
        raise ValidationError(f"Month must be between 1 and 12, got {month!r}")
    return month


def to_summary_month(month_index: int) -> int:
    """0-based calendar month index -> 1-based summary month."""
    if not 0 <= month_index <= 11:
        raise ValidationError(f"Month index must be 0-11, got {month_index}")
    return month_index + 1


def to_month_index(month: int) -> int:
    """1-based summary month -> 0-based calendar month index."""
    return check_month(month) - 1


def month_bounds(month: int, year: int) -> tuple[date, date]:
    """First and last day of a 1-based month, both inclusive."""
    check_month(month)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def in_month(expense: Expense, month: int, year: int) -> bool:
    return expense.date.month == month and expense.date.year == year


# =============================================================================
# ENGINE
# =============================================================================

class AggregationEngine:
    """
    Turns dated expenses into monthly figures.

    GUARANTEES:
    - Only expenses whose date falls in the requested month are counted
    - per_person_amount is 0 when there are no members (never divides by 0)
    - balance may be negative (overspend is shown, not hidden)
    """

    def compute_monthly_summary(
        self,
        month: int,
        year: int,
        expenses: Iterable[Expense],
        total_members: int,
        full_amount=ZERO,
    ) -> MonthlySummary:
        """
        Raises:
            ValidationError: If month is outside 1-12
        """
        check_month(month)
        total = sum(
            (e.amount for e in expenses if in_month(e, month, year)),
            ZERO,
        )
        members = max(int(total_members or 0), 0)
        if members > 0:
            per_person = (total / members).quantize(CENTS, rounding=ROUND_HALF_UP)
        else:
            per_person = ZERO
        budget = to_decimal(full_amount if full_amount is not None else ZERO, "full amount")

        return MonthlySummary(
            month=month,
            year=year,
            total_expenses=total,
            total_members=members,
            per_person_amount=per_person,
            balance=budget - total,
        )

    def compute_category_summary(
        self,
        month: int,
        year: int,
        expenses: Iterable[Expense],
        categories: Iterable[Category],
    ) -> CategoryMonthlySummary:
        """
        Spend per category for a month, biggest total first.

        Expenses whose category is no longer registered are grouped under
        their id and labelled "Unknown".
        """
        check_month(month)
        known = {c.id: c for c in categories}
        totals: dict[str, Decimal] = {}
        counts: dict[str, int] = {}
        for expense in expenses:
            if not in_month(expense, month, year):
                continue
            totals[expense.category_id] = totals.get(expense.category_id, ZERO) + expense.amount
            counts[expense.category_id] = counts.get(expense.category_id, 0) + 1

        rows = []
        for category_id, total in totals.items():
            category = known.get(category_id)
            rows.append(CategoryMonthlyTotal(
                category_id=category_id,
                category_name=category.name if category else UNKNOWN_CATEGORY,
                color=(category.color if category and category.color else DEFAULT_CATEGORY_COLOR),
                total=total,
                expense_count=counts[category_id],
                allocated_amount=category.allocated_amount if category else None,
            ))
        rows.sort(key=lambda r: (-r.total, r.category_name))

        return CategoryMonthlySummary(month=month, year=year, categories=rows)


# =============================================================================
# SERVICE
# =============================================================================

class MonthlySummaryService:
    """
    Fetches summary inputs from the collaborators and runs the engine.
    """

    def __init__(
        self,
        expenses: ExpenseStorageInterface,
        members: MemberRegistry,
        budget: BudgetStore,
        categories: Optional[CategoryRegistry] = None,
        engine: Optional[AggregationEngine] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._expenses = expenses
        self._members = members
        self._budget = budget
        self._categories = categories
        self.engine = engine or AggregationEngine()
        self.audit = audit_logger or AuditLogger()

    async def _load_expenses(self, month: int, year: int) -> Optional[list[Expense]]:
        try:
            return await self._expenses.list_expenses()
        except TransportError as e:
            await self.audit.log_summary_degraded(month, year, "expenses", str(e))
            return None

    async def summary_for(self, month: int, year: int) -> MonthlySummary:
        """
        Monthly summary for a 1-based month. Never raises for a failing
        collaborator.

        Raises:
            ValidationError: If month is outside 1-12
        """
        check_month(month)

        expenses = await self._load_expenses(month, year)
        if expenses is None:
            return MonthlySummary.empty(month, year)

        try:
            total_members = await self._members.count_members()
        except TransportError as e:
            await self.audit.log_summary_degraded(month, year, "members", str(e))
            total_members = 0

        try:
            full_amount = await self._budget.get_full_amount()
        except TransportError as e:
            await self.audit.log_summary_degraded(month, year, "full amount", str(e))
            full_amount = ZERO

        return self.engine.compute_monthly_summary(
            month, year, expenses, total_members, full_amount
        )

    async def summary_for_month_index(self, year: int, month_index: int) -> MonthlySummary:
        """Summary for a calendar page's 0-based month index."""
        return await self.summary_for(to_summary_month(month_index), year)

    async def category_summary_for(self, month: int, year: int) -> CategoryMonthlySummary:
        """Per-category breakdown. Degrades to an empty breakdown."""
        check_month(month)

        expenses = await self._load_expenses(month, year)
        if expenses is None:
            return CategoryMonthlySummary(month=month, year=year)

        categories: list[Category] = []
        if self._categories is not None:
            try:
                categories = await self._categories.list_categories()
            except TransportError as e:
                await self.audit.log_summary_degraded(month, year, "categories", str(e))

        return self.engine.compute_category_summary(month, year, expenses, categories)

    async def get_full_amount(self) -> Decimal:
        """Current full amount, 0 if it cannot be read."""
        try:
            return await self._budget.get_full_amount()
        except TransportError as e:
            await self.audit.log_external_service_error("budget", str(e))
            return ZERO

    async def set_full_amount(self, amount) -> Decimal:
        """
        Set the household's monthly full amount.

        Raises:
            ValidationError: If amount is negative or not a number
            TransportError: If the budget store cannot be written
        """
        try:
            value = require_non_negative_amount(amount, "full amount")
        except ValidationError as e:
            await self.audit.log_validation_failed("budget", str(e))
            raise

        old = await self.get_full_amount()
        await self._budget.set_full_amount(value)
        await self.audit.log_full_amount_updated(str(old), str(value))
        return value
