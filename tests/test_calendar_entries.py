"""
Tests for the calendar entry store and the month grid.
"""

import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

from src.calendar_entries.grid import (
    DAY_NAMES,
    MONTH_NAMES,
    MonthCursor,
    build_month_grid,
    is_same_day,
)
from src.errors import NotFoundError, PermissionError, ValidationError
from src.models.audit import AuditEventType
from src.models.household import CalendarEntryPatch, Category


MARCH_5 = date(2024, 3, 5)


class TestCreate:
    """Creating entries."""

    @pytest.mark.asyncio
    async def test_create_freezes_category_name(self, calendar, category_registry, member):
        entry = await calendar.create(MARCH_5, "rice", "Bought 5kg", price=320, author=member)
        assert entry.category_name == "Rice"
        assert entry.price == Decimal("320")
        assert entry.creator.name == "Ravi"

        category_registry.add_category(Category(id="rice", name="Basmati"))
        stored = await calendar.get(entry.id)
        assert stored.category_name == "Rice"

    @pytest.mark.asyncio
    async def test_unknown_category_label(self, calendar):
        entry = await calendar.create(MARCH_5, "deleted-category", "note")
        assert entry.category_name == "Unknown"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kwargs", [
        {"day": MARCH_5, "category_id": "rice", "text": "   "},
        {"day": MARCH_5, "category_id": "", "text": "note"},
        {"day": None, "category_id": "rice", "text": "note"},
        {"day": MARCH_5, "category_id": "rice", "text": "note", "price": -1},
        {"day": MARCH_5, "category_id": "rice", "text": "note", "price": "abc"},
    ])
    async def test_invalid_input(self, calendar, audit_storage, kwargs):
        with pytest.raises(ValidationError):
            await calendar.create(**kwargs)
        assert calendar.snapshot() == []
        assert audit_storage.events[-1].event_type == AuditEventType.VALIDATION_FAILED

    @pytest.mark.asyncio
    async def test_datetime_day_is_truncated(self, calendar):
        entry = await calendar.create(datetime(2024, 3, 5, 23, 59), "rice", "late note")
        assert entry.date == MARCH_5
        assert calendar.count_on(MARCH_5) == 1

    @pytest.mark.asyncio
    async def test_text_too_long(self, calendar):
        with pytest.raises(ValidationError):
            await calendar.create(MARCH_5, "rice", "x" * 1001)
        assert calendar.snapshot() == []

    @pytest.mark.asyncio
    async def test_zero_price_allowed(self, calendar):
        entry = await calendar.create(MARCH_5, "rice", "free sample", price=0)
        assert entry.price == Decimal("0")


class TestUpdate:
    """Updates are bound to the entry's own window."""

    @pytest.mark.asyncio
    async def test_update_within_window(self, calendar, clock):
        entry = await calendar.create(MARCH_5, "rice", "note")
        clock.advance(minutes=4, seconds=59)
        updated = await calendar.update(entry.id, {"text": "better note", "price": 50})
        assert updated.text == "better note"
        assert updated.price == Decimal("50")
        assert updated.created_at == entry.created_at
        assert updated.updated_at == clock.now()

    @pytest.mark.asyncio
    async def test_update_after_window(self, calendar, clock, audit_storage):
        entry = await calendar.create(MARCH_5, "rice", "note")
        clock.advance(minutes=5)
        with pytest.raises(PermissionError):
            await calendar.update(entry.id, CalendarEntryPatch(text="late"))
        assert (await calendar.get(entry.id)).text == "note"
        assert audit_storage.events[-1].event_type == AuditEventType.PERMISSION_DENIED

    @pytest.mark.asyncio
    async def test_update_cannot_move_date(self, calendar):
        entry = await calendar.create(MARCH_5, "rice", "note")
        with pytest.raises(ValidationError, match="date cannot be changed"):
            await calendar.update(entry.id, {"date": MARCH_5 + timedelta(days=1)})
        assert (await calendar.get(entry.id)).date == MARCH_5

    @pytest.mark.asyncio
    async def test_update_category_re_resolves_name(self, calendar):
        entry = await calendar.create(MARCH_5, "rice", "note")
        updated = await calendar.update(entry.id, {"category_id": "oil"})
        assert updated.category_name == "Oil"

    @pytest.mark.asyncio
    async def test_update_to_missing_category_keeps_name(self, calendar):
        entry = await calendar.create(MARCH_5, "rice", "note")
        updated = await calendar.update(entry.id, {"category_id": "gone"})
        assert updated.category_id == "gone"
        assert updated.category_name == "Rice"

    @pytest.mark.asyncio
    async def test_explicit_none_clears_price(self, calendar):
        entry = await calendar.create(MARCH_5, "rice", "note", price=10)
        updated = await calendar.update(entry.id, {"price": None})
        assert updated.price is None

    @pytest.mark.asyncio
    async def test_update_missing(self, calendar):
        with pytest.raises(NotFoundError):
            await calendar.update(uuid4(), {"text": "x"})

    @pytest.mark.asyncio
    async def test_update_empty_text(self, calendar):
        entry = await calendar.create(MARCH_5, "rice", "note")
        with pytest.raises(ValidationError):
            await calendar.update(entry.id, {"text": "  "})


class TestRemove:
    """Removal is bound to the same window."""

    @pytest.mark.asyncio
    async def test_remove_within_window(self, calendar):
        entry = await calendar.create(MARCH_5, "rice", "note")
        await calendar.remove(entry.id)
        assert calendar.snapshot() == []
        with pytest.raises(NotFoundError):
            await calendar.get(entry.id)

    @pytest.mark.asyncio
    async def test_remove_after_window(self, calendar, clock):
        entry = await calendar.create(MARCH_5, "rice", "note")
        clock.advance(minutes=6)
        with pytest.raises(PermissionError):
            await calendar.remove(entry.id)
        assert calendar.count_on(MARCH_5) == 1

    @pytest.mark.asyncio
    async def test_remove_missing(self, calendar):
        with pytest.raises(NotFoundError):
            await calendar.remove(uuid4())


class TestRetrieval:
    """Month and day retrieval."""

    @pytest.mark.asyncio
    async def test_list_by_month_zero_based(self, calendar):
        await calendar.create(date(2024, 2, 29), "rice", "feb")
        march = await calendar.create(MARCH_5, "rice", "march")
        await calendar.create(date(2024, 4, 1), "rice", "april")

        entries = await calendar.list_by_month(2024, 2)
        assert [e.id for e in entries] == [march.id]

    @pytest.mark.asyncio
    async def test_list_by_month_is_stable(self, calendar):
        await calendar.create(MARCH_5, "rice", "one")
        await calendar.create(date(2024, 3, 20), "oil", "two")
        first = await calendar.list_by_month(2024, 2)
        second = await calendar.list_by_month(2024, 2)
        assert first == second

    @pytest.mark.asyncio
    async def test_list_by_month_rejects_bad_index(self, calendar):
        with pytest.raises(ValidationError):
            await calendar.list_by_month(2024, 12)

    @pytest.mark.asyncio
    async def test_list_by_day_newest_first(self, calendar, clock):
        older = await calendar.create(MARCH_5, "rice", "older")
        clock.advance(minutes=1)
        newer = await calendar.create(MARCH_5, "rice", "newer")
        await calendar.create(date(2024, 3, 6), "rice", "other day")

        entries = await calendar.list_by_day(MARCH_5)
        assert [e.id for e in entries] == [newer.id, older.id]
        assert calendar.count_on(MARCH_5) == 2

    @pytest.mark.asyncio
    async def test_day_lookups_ignore_time_of_day(self, calendar):
        entry = await calendar.create(MARCH_5, "rice", "note")
        afternoon = datetime(2024, 3, 5, 14, 30)
        assert [e.id for e in await calendar.list_by_day(afternoon)] == [entry.id]
        assert calendar.count_on(afternoon) == 1
        assert len(calendar.day_views(afternoon)) == 1

    @pytest.mark.asyncio
    async def test_day_views_follow_the_clock(self, calendar, clock):
        await calendar.create(MARCH_5, "rice", "note")
        view = calendar.day_views(MARCH_5)[0]
        assert view.can_edit is True
        assert view.remaining_label == "5m 0s"

        clock.advance(minutes=5)
        view = calendar.day_views(MARCH_5)[0]
        assert view.can_edit is False
        assert view.can_delete is False
        assert view.remaining_label == "Locked"

    @pytest.mark.asyncio
    async def test_entry_view_includes_comments(self, calendar, member):
        entry = await calendar.create(MARCH_5, "rice", "note")
        await calendar.add_comment(entry.id, member, "nice")
        view = calendar.view(entry.id)
        assert [c.text for c in view.comments] == ["nice"]


class TestMonthGrid:
    """Tests for the pure grid helpers."""

    def test_grid_has_42_days_sunday_first(self):
        grid = build_month_grid(2024, 2)  # March 2024 starts on a Friday
        assert len(grid) == 42
        assert grid[0] == date(2024, 2, 25)
        assert grid[0].weekday() == 6
        assert grid[5] == date(2024, 3, 1)
        assert grid[-1] == date(2024, 4, 6)

    def test_grid_month_starting_on_sunday(self):
        grid = build_month_grid(2024, 8)  # September 2024 starts on a Sunday
        assert grid[0] == date(2024, 9, 1)

    def test_cursor_wraps_year(self):
        assert MonthCursor(2024, 0).previous() == MonthCursor(2023, 11)
        assert MonthCursor(2023, 11).next() == MonthCursor(2024, 0)

    def test_cursor_summary_month(self):
        cursor = MonthCursor(2024, 2)
        assert cursor.summary_month == 3
        assert cursor.month_name == "March"
        assert cursor.title == "March 2024"
        assert cursor.contains(MARCH_5)
        assert not cursor.contains(date(2024, 4, 1))

    def test_cursor_today(self, clock):
        assert MonthCursor.today(clock) == MonthCursor(2024, 2)
        assert MonthCursor(2024, 2).is_today(MARCH_5, clock)

    def test_invalid_month_index(self):
        with pytest.raises(ValidationError):
            MonthCursor(2024, 12)

    def test_helpers(self):
        assert DAY_NAMES[0] == "Sun"
        assert MONTH_NAMES[11] == "December"
        assert is_same_day(MARCH_5, date(2024, 3, 5))
        assert not is_same_day(MARCH_5, None)
