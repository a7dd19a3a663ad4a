"""
Calendar Entry Store

Day-addressed collection of calendar entries (dated, categorised notes
that may carry a price), backed by remote storage with a local snapshot.

DESIGN DECISION: The snapshot is only ever replaced wholesale by a fresh
read. After every successful mutation the store re-reads everything
instead of patching the snapshot locally, so it never drifts from what
the remote store actually holds.

Entries follow the same 5-minute edit window as comments, anchored to the
entry's own creation instant. An entry's date can never change.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from src.audit.logger import AuditLogger
from src.calendar_entries.grid import check_month_index
from src.errors import NotFoundError, PermissionError, ValidationError
from src.models.household import CalendarEntry, CalendarEntryPatch, CalendarEntryView
from src.permissions.clock import Clock
from src.permissions.policies import EditWindowPolicy
from src.services.directory import CategoryDirectory
from src.services.storage.interface import CalendarStorageInterface
from src.threads.comment_thread import MAX_TEXT_LENGTH
from src.threads.owner import AuthorLike, ThreadOwner, as_author
from src.validation.validator import (
    build_model,
    coerce_id,
    parse_model,
    require_date,
    require_id,
    require_non_negative_amount,
    require_text,
    to_day,
)


class CalendarEntryStore(ThreadOwner):
    """
    CRUD and month/day retrieval of calendar entries.

    Usage:
        store = CalendarEntryStore(storage, CategoryDirectory(registry))
        await store.refresh()
        entry = await store.create(day, "rice", "Bought 5kg", price=320, author=member)
        views = store.day_views(day)
    """

    entity_type = "calendar_entry"
    entity_label = "Calendar entry"

    def __init__(
        self,
        storage: CalendarStorageInterface,
        categories: CategoryDirectory,
        policy: Optional[EditWindowPolicy] = None,
        clock: Optional[Clock] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(policy=policy, clock=clock, audit_logger=audit_logger)
        self._storage = storage
        self._categories = categories
        self._snapshot: dict[UUID, CalendarEntry] = {}

    # =========================================================================
    # SNAPSHOT
    # =========================================================================

    async def refresh(self) -> None:
        entries = await self._storage.list_entries()
        self._snapshot = {e.id: e for e in entries}

    def snapshot(self) -> list[CalendarEntry]:
        """Copies of every entry in the last successful read."""
        return [e.model_copy(deep=True) for e in self._snapshot.values()]

    def _cached(self, parent_id: UUID) -> Optional[CalendarEntry]:
        return self._snapshot.get(parent_id)

    async def _load(self, parent_id: UUID) -> Optional[CalendarEntry]:
        return await self._storage.get_entry(parent_id)

    async def _persist(self, item: CalendarEntry) -> None:
        await self._storage.update_entry(item)

    async def _ensure_window(self, entry: CalendarEntry) -> None:
        try:
            self.policy.ensure_can_modify(
                entry.created_at, self.clock.now(), self.entity_label
            )
        except PermissionError as e:
            await self.audit.log_permission_denied(
                entity_type=self.entity_type,
                entity_id=entry.id,
                reason=str(e),
            )
            raise

    # =========================================================================
    # CRUD
    # =========================================================================

    async def get(self, entry_id) -> CalendarEntry:
        """
        Raises:
            NotFoundError: If no entry has this id
        """
        _, entry = await self._require(entry_id)
        return entry

    async def create(
        self,
        day: date,
        category_id: str,
        text: str,
        price=None,
        author: AuthorLike = None,
    ) -> CalendarEntry:
        """
        Create an entry on a day.

        The category's display name is resolved now and frozen on the entry.

        Raises:
            ValidationError: If the day is missing, text or category_id is
                empty, or price is negative
        """
        try:
            day = require_date(day, "date")
            category_id = require_id(category_id, "category")
            text = require_text(text, "text", MAX_TEXT_LENGTH)
            amount = None if price is None else require_non_negative_amount(price, "price")
        except ValidationError as e:
            await self.audit.log_validation_failed(self.entity_type, str(e))
            raise

        category_name = await self._categories.name_for(category_id)
        creator = as_author(author)
        entry = build_model(
            CalendarEntry,
            date=day,
            category_id=category_id,
            category_name=category_name,
            text=text,
            price=amount,
            creator=creator,
            created_at=self.clock.now(),
        )
        await self._storage.save_entry(entry)
        await self.refresh()
        await self.audit.log_entry_created(
            entry_id=entry.id,
            entry_date=day.isoformat(),
            category_name=category_name,
            actor=creator.name,
        )
        return entry

    async def update(self, entry_id, patch) -> CalendarEntry:
        """
        Change text, category or price while the edit window is open.

        ``patch`` is a CalendarEntryPatch or a mapping of its fields.
        Passing ``price=None`` explicitly clears the price.

        Raises:
            NotFoundError: If the entry does not exist
            PermissionError: If the edit window has closed
            ValidationError: If the patch is invalid or tries to move the entry
        """
        _, entry = await self._require(entry_id)
        await self._ensure_window(entry)

        try:
            if isinstance(patch, dict) and "date" in patch:
                raise ValidationError("Calendar entry date cannot be changed")
            changes = parse_model(CalendarEntryPatch, patch)
            if changes.text is not None:
                changes.text = require_text(changes.text, "text", MAX_TEXT_LENGTH)
        except ValidationError as e:
            await self.audit.log_validation_failed(self.entity_type, str(e), entry.id)
            raise

        changed = []
        if changes.text is not None and changes.text != entry.text:
            entry.text = changes.text
            changed.append("text")
        if changes.category_id is not None and changes.category_id != entry.category_id:
            category = await self._categories.get(changes.category_id)
            entry.category_id = changes.category_id
            # A category that cannot be found keeps the previous name
            if category is not None:
                entry.category_name = category.name
            changed.append("category_id")
        if "price" in changes.model_fields_set and changes.price != entry.price:
            entry.price = changes.price
            changed.append("price")

        entry.updated_at = self.clock.now()
        await self._storage.update_entry(entry)
        await self.refresh()
        await self.audit.log_entry_updated(entry.id, changed)
        return entry

    async def remove(self, entry_id) -> CalendarEntry:
        """
        Delete an entry (and its thread) while the edit window is open.

        Raises:
            NotFoundError: If the entry does not exist
            PermissionError: If the edit window has closed
        """
        _, entry = await self._require(entry_id)
        await self._ensure_window(entry)
        if not await self._storage.delete_entry(entry.id):
            raise NotFoundError(f"Calendar entry not found: {entry_id}")
        await self.refresh()
        await self.audit.log_entry_deleted(entry.id)
        return entry

    # =========================================================================
    # RETRIEVAL
    # =========================================================================

    async def list_by_month(self, year: int, month_index: int) -> list[CalendarEntry]:
        """
        Entries dated within a month. ``month_index`` is 0-based.
        """
        try:
            check_month_index(month_index)
        except ValidationError as e:
            await self.audit.log_validation_failed(self.entity_type, str(e))
            raise
        await self.refresh()
        entries = [
            e for e in self._snapshot.values()
            if e.date.year == year and e.date.month == month_index + 1
        ]
        entries.sort(key=lambda e: (e.date, e.created_at))
        return [e.model_copy(deep=True) for e in entries]

    async def list_by_day(self, day: date) -> list[CalendarEntry]:
        """Entries on one day, newest first, from a fresh read."""
        await self.refresh()
        return self.entries_on(day)

    def entries_on(self, day: date) -> list[CalendarEntry]:
        """Entries on one day from the snapshot, newest first."""
        day = to_day(day)
        entries = [e for e in self._snapshot.values() if e.date == day]
        entries.sort(key=lambda e: e.created_at, reverse=True)
        return [e.model_copy(deep=True) for e in entries]

    def count_on(self, day: date) -> int:
        day = to_day(day)
        return sum(1 for e in self._snapshot.values() if e.date == day)

    # =========================================================================
    # VIEWS
    # =========================================================================

    def entry_view(self, entry: CalendarEntry) -> CalendarEntryView:
        """Permission flags and countdown computed against the clock now."""
        now = self.clock.now()
        return CalendarEntryView(
            id=entry.id,
            date=entry.date,
            category_id=entry.category_id,
            category_name=entry.category_name,
            text=entry.text,
            price=entry.price,
            creator=entry.creator,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
            can_edit=self.policy.can_edit(entry.created_at, now),
            can_delete=self.policy.can_delete(entry.created_at, now),
            remaining_label=self.policy.remaining_label(entry.created_at, now),
            comments=entry.thread.views(now, self.policy),
        )

    def day_views(self, day: date) -> list[CalendarEntryView]:
        return [self.entry_view(e) for e in self.entries_on(day)]

    def view(self, entry_id) -> CalendarEntryView:
        """
        Raises:
            NotFoundError: If the entry is not in the snapshot
        """
        entry = self._cached(coerce_id(entry_id, self.entity_label))
        if entry is None:
            raise NotFoundError(f"Calendar entry not found: {entry_id}")
        return self.entry_view(entry)
