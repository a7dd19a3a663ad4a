"""
Tests for Household Expenses

Test strategy:
1. Unit tests for individual components (models, policies, threads)
2. Store tests against the in-memory backend (no network)
3. Time is pinned with FixedClock, never slept on
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from src.models.household import (
    CalendarEntry,
    CalendarEntryPatch,
    Category,
    CategoryMonthlySummary,
    CategoryMonthlyTotal,
    Expense,
    ExpenseFilter,
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
from src.threads.comment_thread import CommentThread


T0 = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)


class TestMemberModels:
    """Tests for registry-owned models."""

    def test_member_creation(self):
        """Test Member model creation."""
        member = Member(id="m1", name="Asha", phone="9876543210", is_admin=True)
        assert member.name == "Asha"
        assert member.is_admin is True

    def test_member_strips_whitespace(self):
        """Test that whitespace is stripped from names."""
        member = Member(id="m1", name="  Asha  ", phone="9876543210")
        assert member.name == "Asha"

    def test_member_phone_must_be_ten_digits(self):
        """Test that short or non-numeric phones are rejected."""
        with pytest.raises(ValueError):
            Member(id="m1", name="Asha", phone="12345")
        with pytest.raises(ValueError):
            Member(id="m1", name="Asha", phone="98765abcde")

    def test_member_as_author(self):
        """Test conversion to an Author for attribution."""
        member = Member(id="m1", name="Asha", phone="9876543210", is_admin=True)
        author = member.as_author()
        assert author.id == "m1"
        assert author.phone == "9876543210"
        assert author.is_admin is True

    def test_category_rejects_negative_allocation(self):
        """Test that a category allocation cannot be negative."""
        with pytest.raises(ValueError):
            Category(id="rice", name="Rice", allocated_amount=Decimal("-1"))


class TestExpenseModels:
    """Tests for expense models."""

    def test_expense_creation_attaches_thread(self):
        """Test that every expense gets its own empty thread."""
        expense = Expense(
            date=date(2024, 3, 5),
            category_id="groceries",
            amount=Decimal("100"),
        )
        assert isinstance(expense.thread, CommentThread)
        assert expense.thread.parent_id == expense.id
        assert len(expense.thread) == 0

    def test_expense_rejects_zero_amount(self):
        """Test that amounts must be strictly positive."""
        with pytest.raises(ValueError):
            Expense(date=date(2024, 3, 5), category_id="groceries", amount=Decimal("0"))

    def test_expense_rejects_foreign_thread(self):
        """Test that a thread belonging to another item is refused."""
        with pytest.raises(ValueError, match="different expense"):
            Expense(
                date=date(2024, 3, 5),
                category_id="groceries",
                amount=Decimal("10"),
                thread=CommentThread(parent_id=uuid4()),
            )

    def test_expense_patch_forbids_unknown_fields(self):
        """Test that a patch cannot smuggle in other fields."""
        with pytest.raises(ValueError):
            ExpensePatch(added_by="someone")

    def test_filter_date_validation(self):
        """Test that an inverted range is rejected."""
        with pytest.raises(ValueError, match="End date cannot be before start date"):
            ExpenseFilter(start_date=date(2024, 3, 31), end_date=date(2024, 3, 1))

    def test_filter_bounds_are_inclusive(self):
        """Test that boundary dates match."""
        criteria = ExpenseFilter(start_date=date(2024, 3, 1), end_date=date(2024, 3, 31))
        first = Expense(date=date(2024, 3, 1), category_id="x", amount=Decimal("1"))
        last = Expense(date=date(2024, 3, 31), category_id="x", amount=Decimal("1"))
        after = Expense(date=date(2024, 4, 1), category_id="x", amount=Decimal("1"))
        assert criteria.matches(first)
        assert criteria.matches(last)
        assert not criteria.matches(after)


class TestCalendarEntryModels:
    """Tests for calendar entry models."""

    def test_entry_creation(self):
        """Test CalendarEntry creation with defaults."""
        entry = CalendarEntry(
            date=date(2024, 3, 5),
            category_id="rice",
            text="Bought 5kg",
            created_at=T0,
        )
        assert entry.category_name == "Unknown"
        assert entry.price is None
        assert entry.thread.parent_id == entry.id

    def test_entry_rejects_negative_price(self):
        """Test that price may be zero but not negative."""
        CalendarEntry(date=date(2024, 3, 5), category_id="rice", text="x", price=Decimal("0"), created_at=T0)
        with pytest.raises(ValueError):
            CalendarEntry(date=date(2024, 3, 5), category_id="rice", text="x", price=Decimal("-1"), created_at=T0)

    def test_entry_patch_has_no_date(self):
        """Test that the date cannot be patched."""
        with pytest.raises(ValueError):
            CalendarEntryPatch(date=date(2024, 3, 6))


class TestSummaryModels:
    """Tests for derived summary models."""

    def test_empty_summary_is_all_zero(self):
        """Test the degraded summary."""
        summary = MonthlySummary.empty(3, 2024)
        assert summary.total_expenses == Decimal("0")
        assert summary.total_members == 0
        assert summary.per_person_amount == Decimal("0")
        assert summary.balance == Decimal("0")

    def test_summary_month_bounds(self):
        """Test that month must be 1-12."""
        with pytest.raises(ValueError):
            MonthlySummary(month=0, year=2024)
        with pytest.raises(ValueError):
            MonthlySummary(month=13, year=2024)

    def test_category_total_remaining(self):
        """Test remaining allocation."""
        row = CategoryMonthlyTotal(
            category_id="rice",
            category_name="Rice",
            color="#2ecc71",
            total=Decimal("300"),
            expense_count=2,
            allocated_amount=Decimal("500"),
        )
        assert row.remaining == Decimal("200")

        no_allocation = row.model_copy(update={"allocated_amount": None})
        assert no_allocation.remaining is None

    def test_category_summary_total(self):
        """Test sum across categories."""
        summary = CategoryMonthlySummary(
            month=3,
            year=2024,
            categories=[
                CategoryMonthlyTotal(category_id="a", category_name="A", color="#999",
                                     total=Decimal("10"), expense_count=1),
                CategoryMonthlyTotal(category_id="b", category_name="B", color="#999",
                                     total=Decimal("5.50"), expense_count=1),
            ],
        )
        assert summary.total == Decimal("15.50")


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.EXPENSE_CREATED,
            description="Expense added",
        )
        assert event.event_id is not None
        assert event.timestamp is not None
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.COMMENT_ADDED,
            description="Comment added",
            details={"parent_type": "expense"},
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "comment_added"
        assert log_dict["details"] == {"parent_type": "expense"}

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.ENTRY_DELETED,
            description="Calendar entry deleted",
            actor="Asha",
        )
        row = event.to_sheets_row()
        assert len(row) == 12
        assert row[2] == "entry_deleted"
        assert row[7] == "Asha"

    def test_audit_event_builder_permission_denied(self):
        """Test the permission denied builder."""
        comment_id = uuid4()
        event = AuditEventBuilder.permission_denied(
            entity_type="comment",
            entity_id=comment_id,
            reason="Comment can no longer be changed",
        )
        assert event.event_type == AuditEventType.PERMISSION_DENIED
        assert event.severity == AuditSeverity.WARNING
        assert event.entity_id == comment_id
        assert event.is_user_action is True

    def test_audit_event_builder_summary_degraded(self):
        """Test the summary degraded builder."""
        event = AuditEventBuilder.summary_degraded(3, 2024, "members", "timeout")
        assert event.event_type == AuditEventType.SUMMARY_DEGRADED
        assert "03/2024" in event.description
        assert event.details["source"] == "members"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
