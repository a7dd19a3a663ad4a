"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the storage backend because:
1. Household members can view the ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (a household is fine)
- No transactions: last write wins
- Limited query capabilities (we filter in Python)

Comment threads are stored as a JSON column on their parent's row, so an
expense and its comments are always written (and deleted) together.

The implementation follows the abstract interface, so the stores above it
do not know which backend they are talking to.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.config import get_settings
from src.config.settings import GoogleSheetsSettings
from src.models.audit import AuditEvent, AuditEventType, AuditSeverity
from src.models.household import CalendarEntry, Category, Expense, Member
from src.permissions.clock import ensure_utc
from src.threads.comment_thread import Author, CommentThread
from src.services.storage.interface import (
    AuditStorageInterface,
    BudgetStore,
    CalendarStorageInterface,
    CategoryRegistry,
    ConnectionError,
    ExpenseStorageInterface,
    MemberRegistry,
    NotFoundError,
    StorageError,
)


logger = structlog.get_logger(__name__)


EXPENSE_COLUMNS = [
    "id",
    "date",
    "category_id",
    "amount",
    "description",
    "added_by",
    "added_date",
    "updated_at",
    "comments_json",
]

CALENDAR_COLUMNS = [
    "id",
    "date",
    "category_id",
    "category_name",
    "text",
    "price",
    "creator_json",
    "created_at",
    "updated_at",
    "comments_json",
]

CATEGORY_COLUMNS = [
    "id",
    "name",
    "color",
    "icon",
    "icon_url",
    "allocated_amount",
    "created_by",
]

MEMBER_COLUMNS = [
    "id",
    "name",
    "phone",
    "is_admin",
    "added_date",
]

SETTINGS_COLUMNS = ["key", "value"]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "actor",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

FULL_AMOUNT_KEY = "full_amount"


# Retry transient failures; a missing row will not appear by retrying.
sheets_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_not_exception_type(NotFoundError),
    reraise=True,
)


def _safe_get(row: list, index: int, default: str = "") -> str:
    """Handle short rows and blank cells gracefully."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


def _parse_datetime(value: str) -> Optional[datetime]:
    return ensure_utc(datetime.fromisoformat(value)) if value else None


def _thread_to_json(thread: Optional[CommentThread]) -> str:
    if thread is None or not thread.comments:
        return ""
    return json.dumps(thread.model_dump(mode="json")["comments"])


def _thread_from_json(parent_id: UUID, value: str) -> CommentThread:
    comments = json.loads(value) if value else []
    return CommentThread(parent_id=parent_id, comments=comments)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets
        self._sheets: dict[str, gspread.Worksheet] = {}

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        """Get or create a worksheet, writing the header row on creation."""
        if title in self._sheets:
            return self._sheets[title]
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        self._sheets[title] = sheet
        return sheet


class _RowStorage:
    """
    Shared row plumbing for sheets keyed by an id in column A.
    """

    columns: list[str] = []

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet_name(self) -> str:
        raise NotImplementedError

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_sheet(self._sheet_name(), self.columns)

    def _data_rows(self) -> list[list]:
        """All non-empty rows, header excluded."""
        return [row for row in self._sheet().get_all_values()[1:] if row and row[0]]

    def _find_row_number(self, sheet: gspread.Worksheet, key: str) -> Optional[int]:
        # Row 1 is the header
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if row and row[0] == key:
                return idx
        return None

    def _append(self, row: list) -> None:
        """
        Append a row keyed by its first cell, unless that key is already
        present. A retried append whose first attempt landed writes nothing.
        """
        sheet = self._sheet()
        if self._find_row_number(sheet, str(row[0])) is not None:
            return
        sheet.append_row(row, value_input_option="RAW")

    def _replace(self, key: str, row: list, what: str) -> None:
        sheet = self._sheet()
        idx = self._find_row_number(sheet, key)
        if idx is None:
            raise NotFoundError(f"{what} not found: {key}")
        sheet.update(
            range_name=f"A{idx}",
            values=[row],
            value_input_option="RAW",
        )

    def _delete(self, key: str) -> bool:
        sheet = self._sheet()
        idx = self._find_row_number(sheet, key)
        if idx is None:
            return False
        sheet.delete_rows(idx)
        return True


class GoogleSheetsExpenseStorage(_RowStorage, ExpenseStorageInterface):
    """
    Google Sheets implementation of expense storage.

    One expense per row. The comment thread is a JSON column.
    """

    columns = EXPENSE_COLUMNS

    def _sheet_name(self) -> str:
        return self._client.settings.expenses_sheet_name

    def _expense_to_row(self, expense: Expense) -> list:
        """Convert an Expense to a spreadsheet row."""
        return [
            str(expense.id),
            expense.date.isoformat(),
            expense.category_id,
            str(expense.amount),
            expense.description,
            expense.added_by,
            expense.added_date.isoformat(),
            expense.updated_at.isoformat() if expense.updated_at else "",
            _thread_to_json(expense.thread),
        ]

    def _row_to_expense(self, row: list) -> Expense:
        """Convert a spreadsheet row to an Expense."""
        expense_id = UUID(_safe_get(row, 0))
        return Expense(
            id=expense_id,
            date=date.fromisoformat(_safe_get(row, 1)),
            category_id=_safe_get(row, 2),
            amount=Decimal(_safe_get(row, 3)),
            description=_safe_get(row, 4),
            added_by=_safe_get(row, 5),
            added_date=_parse_datetime(_safe_get(row, 6)),
            updated_at=_parse_datetime(_safe_get(row, 7)),
            thread=_thread_from_json(expense_id, _safe_get(row, 8)),
        )

    @sheets_retry
    async def save_expense(self, expense: Expense) -> bool:
        """Save an expense to Google Sheets."""
        try:
            self._append(self._expense_to_row(expense))
            return True
        except Exception as e:
            raise StorageError(f"Failed to save expense: {e}")

    @sheets_retry
    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        try:
            for row in self._data_rows():
                if row[0] == str(expense_id):
                    return self._row_to_expense(row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get expense: {e}")

    @sheets_retry
    async def update_expense(self, expense: Expense) -> bool:
        try:
            self._replace(str(expense.id), self._expense_to_row(expense), "Expense")
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update expense: {e}")

    @sheets_retry
    async def delete_expense(self, expense_id: UUID) -> bool:
        try:
            return self._delete(str(expense_id))
        except Exception as e:
            raise StorageError(f"Failed to delete expense: {e}")

    @sheets_retry
    async def list_expenses(self) -> list[Expense]:
        try:
            rows = self._data_rows()
        except Exception as e:
            raise StorageError(f"Failed to list expenses: {e}")

        expenses = []
        for row in rows:
            try:
                expenses.append(self._row_to_expense(row))
            except Exception as e:
                logger.warning("malformed_expense_row", row_id=row[0], error=str(e))
        return expenses


class GoogleSheetsCalendarStorage(_RowStorage, CalendarStorageInterface):
    """
    Google Sheets implementation of calendar entry storage.
    """

    columns = CALENDAR_COLUMNS

    def _sheet_name(self) -> str:
        return self._client.settings.calendar_sheet_name

    def _entry_to_row(self, entry: CalendarEntry) -> list:
        return [
            str(entry.id),
            entry.date.isoformat(),
            entry.category_id,
            entry.category_name,
            entry.text,
            str(entry.price) if entry.price is not None else "",
            json.dumps(entry.creator.model_dump(mode="json")),
            entry.created_at.isoformat(),
            entry.updated_at.isoformat() if entry.updated_at else "",
            _thread_to_json(entry.thread),
        ]

    def _row_to_entry(self, row: list) -> CalendarEntry:
        entry_id = UUID(_safe_get(row, 0))
        creator_json = _safe_get(row, 6)
        price = _safe_get(row, 5)
        return CalendarEntry(
            id=entry_id,
            date=date.fromisoformat(_safe_get(row, 1)),
            category_id=_safe_get(row, 2),
            category_name=_safe_get(row, 3, "Unknown"),
            text=_safe_get(row, 4),
            price=Decimal(price) if price else None,
            creator=Author(**json.loads(creator_json)) if creator_json else Author(),
            created_at=_parse_datetime(_safe_get(row, 7)),
            updated_at=_parse_datetime(_safe_get(row, 8)),
            thread=_thread_from_json(entry_id, _safe_get(row, 9)),
        )

    @sheets_retry
    async def save_entry(self, entry: CalendarEntry) -> bool:
        try:
            self._append(self._entry_to_row(entry))
            return True
        except Exception as e:
            raise StorageError(f"Failed to save calendar entry: {e}")

    @sheets_retry
    async def get_entry(self, entry_id: UUID) -> Optional[CalendarEntry]:
        try:
            for row in self._data_rows():
                if row[0] == str(entry_id):
                    return self._row_to_entry(row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get calendar entry: {e}")

    @sheets_retry
    async def update_entry(self, entry: CalendarEntry) -> bool:
        try:
            self._replace(str(entry.id), self._entry_to_row(entry), "Calendar entry")
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update calendar entry: {e}")

    @sheets_retry
    async def delete_entry(self, entry_id: UUID) -> bool:
        try:
            return self._delete(str(entry_id))
        except Exception as e:
            raise StorageError(f"Failed to delete calendar entry: {e}")

    @sheets_retry
    async def list_entries(self) -> list[CalendarEntry]:
        try:
            rows = self._data_rows()
        except Exception as e:
            raise StorageError(f"Failed to list calendar entries: {e}")

        entries = []
        for row in rows:
            try:
                entries.append(self._row_to_entry(row))
            except Exception as e:
                logger.warning("malformed_calendar_row", row_id=row[0], error=str(e))
        return entries


class GoogleSheetsCategoryRegistry(_RowStorage, CategoryRegistry):
    """Reads the category registry sheet maintained by the admin."""

    columns = CATEGORY_COLUMNS

    def _sheet_name(self) -> str:
        return self._client.settings.categories_sheet_name

    def _row_to_category(self, row: list) -> Category:
        allocated = _safe_get(row, 5)
        return Category(
            id=_safe_get(row, 0),
            name=_safe_get(row, 1),
            color=_safe_get(row, 2) or None,
            icon=_safe_get(row, 3) or None,
            icon_url=_safe_get(row, 4) or None,
            allocated_amount=Decimal(allocated) if allocated else None,
            created_by=_safe_get(row, 6, "system"),
        )

    @sheets_retry
    async def list_categories(self) -> list[Category]:
        try:
            rows = self._data_rows()
        except Exception as e:
            raise StorageError(f"Failed to list categories: {e}")

        categories = []
        for row in rows:
            try:
                categories.append(self._row_to_category(row))
            except Exception as e:
                logger.warning("malformed_category_row", row_id=row[0], error=str(e))
        return categories

    async def get_category(self, category_id: str) -> Optional[Category]:
        for category in await self.list_categories():
            if category.id == category_id:
                return category
        return None


class GoogleSheetsMemberRegistry(_RowStorage, MemberRegistry):
    """Reads the member registry sheet."""

    columns = MEMBER_COLUMNS

    def _sheet_name(self) -> str:
        return self._client.settings.members_sheet_name

    def _row_to_member(self, row: list) -> Member:
        added = _safe_get(row, 4)
        data = dict(
            id=_safe_get(row, 0),
            name=_safe_get(row, 1),
            phone=_safe_get(row, 2),
            is_admin=_safe_get(row, 3).lower() == "true",
        )
        if added:
            data["added_date"] = _parse_datetime(added)
        return Member(**data)

    @sheets_retry
    async def list_members(self) -> list[Member]:
        try:
            rows = self._data_rows()
        except Exception as e:
            raise StorageError(f"Failed to list members: {e}")

        members = []
        for row in rows:
            try:
                members.append(self._row_to_member(row))
            except Exception as e:
                logger.warning("malformed_member_row", row_id=row[0], error=str(e))
        return members

    async def count_members(self) -> int:
        return len(await self.list_members())


class GoogleSheetsBudgetStore(_RowStorage, BudgetStore):
    """
    Key/value settings sheet. The full amount lives under ``full_amount``.
    """

    columns = SETTINGS_COLUMNS

    def _sheet_name(self) -> str:
        return self._client.settings.settings_sheet_name

    @sheets_retry
    async def get_full_amount(self) -> Decimal:
        try:
            for row in self._data_rows():
                if row[0] == FULL_AMOUNT_KEY:
                    value = _safe_get(row, 1)
                    return Decimal(value) if value else Decimal("0")
            return Decimal("0")
        except Exception as e:
            raise StorageError(f"Failed to read full amount: {e}")

    @sheets_retry
    async def set_full_amount(self, amount: Decimal) -> bool:
        row = [FULL_AMOUNT_KEY, str(amount)]
        try:
            try:
                self._replace(FULL_AMOUNT_KEY, row, "Setting")
            except NotFoundError:
                self._append(row)
            return True
        except Exception as e:
            raise StorageError(f"Failed to save full amount: {e}")


class GoogleSheetsAuditStorage(_RowStorage, AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    columns = AUDIT_COLUMNS

    def _sheet_name(self) -> str:
        return self._client.settings.audit_sheet_name

    def _sheet(self) -> gspread.Worksheet:
        # More rows for audit log
        return self._client.get_sheet(self._sheet_name(), self.columns, rows=5000)

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=_parse_datetime(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            entity_type=_safe_get(row, 4) or None,
            entity_id=UUID(_safe_get(row, 5)) if _safe_get(row, 5) else None,
            correlation_id=UUID(_safe_get(row, 6)) if _safe_get(row, 6) else None,
            actor=_safe_get(row, 7) or None,
            description=_safe_get(row, 8),
            details=json.loads(_safe_get(row, 9)) if _safe_get(row, 9) else {},
            error_message=_safe_get(row, 10) or None,
            is_user_action=_safe_get(row, 11).lower() == "true",
        )

    def _read_events(self) -> list[AuditEvent]:
        events = []
        for row in self._data_rows():
            try:
                events.append(self._row_to_event(row))
            except Exception:
                continue
        return events

    @sheets_retry
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._append(event.to_sheets_row())
            return True
        except Exception as e:
            # Audit logging should not break the main flow
            logger.warning("audit_append_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        try:
            events = [
                e for e in self._read_events()
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = self._read_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
