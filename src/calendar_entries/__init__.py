"""Calendar entries: store and month grid."""

from src.calendar_entries.grid import (
    DAY_NAMES,
    MONTH_NAMES,
    MonthCursor,
    build_month_grid,
    is_same_day,
)
from src.calendar_entries.store import CalendarEntryStore

__all__ = [
    "CalendarEntryStore",
    "DAY_NAMES",
    "MONTH_NAMES",
    "MonthCursor",
    "build_month_grid",
    "is_same_day",
]
