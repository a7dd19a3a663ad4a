"""
Expense Ledger

The household's expenses, each carrying its own comment thread.

Expenses are an admin surface: they have NO edit window. Any change is
allowed at any time, but when an acting member is supplied it must be an
admin (AdminRolePolicy). Comments on expenses, however, follow the same
5-minute window as everything else.

Deleting an expense deletes its thread with it: the thread lives inside
the expense record, so there is nothing left to orphan.
"""

from datetime import date
from typing import Iterable, Optional, Union
from uuid import UUID

from src.audit.logger import AuditLogger
from src.errors import NotFoundError, PermissionError, ValidationError
from src.models.household import (
    Expense,
    ExpenseFilter,
    ExpenseOrder,
    ExpensePatch,
    Member,
)
from src.permissions.clock import Clock
from src.permissions.policies import AdminRolePolicy, EditWindowPolicy
from src.queries.aggregation import month_bounds
from src.services.storage.interface import ExpenseStorageInterface
from src.threads.comment_thread import CommentView
from src.threads.owner import ThreadOwner
from src.validation.validator import (
    build_model,
    parse_model,
    require_date,
    require_id,
    require_positive_amount,
)


def filter_expenses(
    expenses: Iterable[Expense],
    criteria: Optional[ExpenseFilter] = None,
    order: ExpenseOrder = ExpenseOrder.RECENT_FIRST,
) -> list[Expense]:
    """
    Expenses matching every supplied predicate, in presentation order.

    RECENT_FIRST sorts by date descending (list view); CHRONOLOGICAL by
    date ascending (detail view). Ties fall back to when the expense was
    recorded.
    """
    criteria = criteria or ExpenseFilter()
    matching = [e for e in expenses if criteria.matches(e)]
    reverse = ExpenseOrder(order) == ExpenseOrder.RECENT_FIRST
    matching.sort(key=lambda e: (e.date, e.added_date), reverse=reverse)
    return matching


class ExpenseLedger(ThreadOwner):
    """
    CRUD and filtering of expenses.

    Usage:
        ledger = ExpenseLedger(storage)
        expense = await ledger.create(date(2024, 3, 5), "groceries", "100")
        march = await ledger.filter(category_id="groceries",
                                    start_date=date(2024, 3, 1),
                                    end_date=date(2024, 3, 31))
    """

    entity_type = "expense"
    entity_label = "Expense"

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        policy: Optional[EditWindowPolicy] = None,
        role_policy: Optional[AdminRolePolicy] = None,
        clock: Optional[Clock] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(policy=policy, clock=clock, audit_logger=audit_logger)
        self._storage = storage
        self.role_policy = role_policy or AdminRolePolicy()
        self._snapshot: dict[UUID, Expense] = {}

    # =========================================================================
    # SNAPSHOT
    # =========================================================================

    async def refresh(self) -> None:
        expenses = await self._storage.list_expenses()
        self._snapshot = {e.id: e for e in expenses}

    def snapshot(self) -> list[Expense]:
        return [e.model_copy(deep=True) for e in self._snapshot.values()]

    def _cached(self, parent_id: UUID) -> Optional[Expense]:
        return self._snapshot.get(parent_id)

    async def _load(self, parent_id: UUID) -> Optional[Expense]:
        return await self._storage.get_expense(parent_id)

    async def _persist(self, item: Expense) -> None:
        await self._storage.update_expense(item)

    async def _ensure_role(self, actor: Optional[Member], expense_id: UUID) -> None:
        try:
            self.role_policy.ensure_can_modify(actor, self.entity_label)
        except PermissionError as e:
            await self.audit.log_permission_denied(
                entity_type=self.entity_type,
                entity_id=expense_id,
                reason=str(e),
                actor=actor.name if actor else None,
            )
            raise

    # =========================================================================
    # CRUD
    # =========================================================================

    async def get(self, expense_id) -> Expense:
        """
        Raises:
            NotFoundError: If no expense has this id
        """
        _, expense = await self._require(expense_id)
        return expense

    async def create(
        self,
        day: date,
        category_id: str,
        amount,
        description: str = "",
        added_by: str = "",
    ) -> Expense:
        """
        Record an expense.

        Raises:
            ValidationError: If amount is not a number greater than zero,
                category_id is empty or the date is missing
        """
        try:
            day = require_date(day, "date")
            category_id = require_id(category_id, "category")
            value = require_positive_amount(amount, "amount")
            expense = build_model(
                Expense,
                date=day,
                category_id=category_id,
                amount=value,
                description=description or "",
                added_by=added_by or "",
                added_date=self.clock.now(),
            )
        except ValidationError as e:
            await self.audit.log_validation_failed(self.entity_type, str(e))
            raise

        await self._storage.save_expense(expense)
        await self.refresh()
        await self.audit.log_expense_created(
            expense_id=expense.id,
            amount=str(expense.amount),
            category_id=expense.category_id,
            actor=added_by or None,
        )
        return expense

    async def update(
        self,
        expense_id,
        patch: Union[ExpensePatch, dict],
        actor: Optional[Member] = None,
    ) -> Expense:
        """
        Change an expense. No time restriction.

        Raises:
            NotFoundError: If the expense does not exist
            PermissionError: If ``actor`` is given and is not an admin
            ValidationError: If the patch is invalid
        """
        wanted, expense = await self._require(expense_id)
        await self._ensure_role(actor, wanted)

        try:
            changes = parse_model(ExpensePatch, patch)
        except ValidationError as e:
            await self.audit.log_validation_failed(self.entity_type, str(e), wanted)
            raise

        changed = []
        for field in ("date", "category_id", "amount", "description"):
            value = getattr(changes, field)
            if value is not None and value != getattr(expense, field):
                setattr(expense, field, value)
                changed.append(field)

        expense.updated_at = self.clock.now()
        await self._storage.update_expense(expense)
        await self.refresh()
        await self.audit.log_expense_updated(
            expense_id=wanted,
            changed_fields=changed,
            actor=actor.name if actor else None,
        )
        return expense

    async def delete(self, expense_id, actor: Optional[Member] = None) -> Expense:
        """
        Delete an expense together with its whole comment thread.

        Raises:
            NotFoundError: If the expense does not exist
            PermissionError: If ``actor`` is given and is not an admin
        """
        wanted, expense = await self._require(expense_id)
        await self._ensure_role(actor, wanted)
        if not await self._storage.delete_expense(wanted):
            raise NotFoundError(f"Expense not found: {expense_id}")
        await self.refresh()
        await self.audit.log_expense_deleted(
            expense_id=wanted,
            comment_count=len(expense.thread),
            actor=actor.name if actor else None,
        )
        return expense

    # =========================================================================
    # RETRIEVAL
    # =========================================================================

    async def list_expenses(
        self,
        order: ExpenseOrder = ExpenseOrder.RECENT_FIRST,
    ) -> list[Expense]:
        """Every expense, from a fresh read."""
        await self.refresh()
        return filter_expenses(self.snapshot(), order=order)

    async def filter(
        self,
        criteria: Union[ExpenseFilter, dict, None] = None,
        order: ExpenseOrder = ExpenseOrder.RECENT_FIRST,
        **kwargs,
    ) -> list[Expense]:
        """
        Expenses matching category and/or an inclusive date range.

        Criteria may be an ExpenseFilter, a mapping, or keyword arguments.

        Raises:
            ValidationError: If start_date is after end_date
        """
        try:
            if criteria is None:
                criteria = parse_model(ExpenseFilter, kwargs)
            else:
                criteria = parse_model(ExpenseFilter, criteria)
        except ValidationError as e:
            await self.audit.log_validation_failed(self.entity_type, str(e))
            raise
        await self.refresh()
        return filter_expenses(self.snapshot(), criteria, order)

    async def expenses_for_month(self, month: int, year: int) -> list[Expense]:
        """Expenses dated within a month. ``month`` is 1-based."""
        start, end = month_bounds(month, year)
        return await self.filter(start_date=start, end_date=end)

    def all_comments(self) -> list[tuple[UUID, CommentView]]:
        """
        Every expense comment in the snapshot, newest first, paired with
        the id of the expense it belongs to.
        """
        now = self.clock.now()
        pairs = [
            (expense.id, view)
            for expense in self._snapshot.values()
            for view in expense.thread.views(now, self.policy)
        ]
        pairs.sort(key=lambda pair: pair[1].timestamp, reverse=True)
        return pairs
