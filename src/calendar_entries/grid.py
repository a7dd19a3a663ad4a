"""
Calendar Grid

Pure helpers for rendering a month as a 6x7 grid and moving between
months. No storage, no clock reads except through an injected Clock.

Months here are 0-based (January = 0), matching the calendar page state.
Convert with src.queries.aggregation.to_summary_month before asking for
a monthly summary.
"""

from datetime import date, timedelta
from typing import Optional

from src.errors import ValidationError
from src.permissions.clock import Clock, SystemClock


DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

GRID_CELLS = 42


def check_month_index(month_index: int) -> None:
    if not 0 <= month_index <= 11:
        raise ValidationError(f"Month index must be 0-11, got {month_index}")


def build_month_grid(year: int, month_index: int) -> list[date]:
    """
    The 42 days shown for a month, Sunday first.

    Leading cells belong to the previous month and trailing cells to the
    next one; use MonthCursor.contains to tell them apart.
    """
    check_month_index(month_index)
    first = date(year, month_index + 1, 1)
    # date.weekday() is Monday=0; shift so Sunday is column 0
    lead = (first.weekday() + 1) % 7
    start = first - timedelta(days=lead)
    return [start + timedelta(days=i) for i in range(GRID_CELLS)]


def is_same_day(a: Optional[date], b: Optional[date]) -> bool:
    if a is None or b is None:
        return False
    return (a.year, a.month, a.day) == (b.year, b.month, b.day)


class MonthCursor:
    """
    The month currently displayed by the calendar page.

    Usage:
        cursor = MonthCursor.today(clock)
        cursor = cursor.next()
        grid = cursor.grid()
    """

    def __init__(self, year: int, month_index: int):
        check_month_index(month_index)
        self.year = year
        self.month_index = month_index

    def __eq__(self, other) -> bool:
        if not isinstance(other, MonthCursor):
            return NotImplemented
        return (self.year, self.month_index) == (other.year, other.month_index)

    def __repr__(self) -> str:
        return f"MonthCursor({self.year}, {self.month_index})"

    @classmethod
    def today(cls, clock: Optional[Clock] = None) -> "MonthCursor":
        current = (clock or SystemClock()).today()
        return cls(current.year, current.month - 1)

    def previous(self) -> "MonthCursor":
        if self.month_index == 0:
            return MonthCursor(self.year - 1, 11)
        return MonthCursor(self.year, self.month_index - 1)

    def next(self) -> "MonthCursor":
        if self.month_index == 11:
            return MonthCursor(self.year + 1, 0)
        return MonthCursor(self.year, self.month_index + 1)

    @property
    def month_name(self) -> str:
        return MONTH_NAMES[self.month_index]

    @property
    def title(self) -> str:
        return f"{self.month_name} {self.year}"

    @property
    def summary_month(self) -> int:
        """1-based month for the summary contract."""
        return self.month_index + 1

    def contains(self, day: date) -> bool:
        return day.year == self.year and day.month == self.month_index + 1

    def grid(self) -> list[date]:
        return build_month_grid(self.year, self.month_index)

    def is_today(self, day: date, clock: Optional[Clock] = None) -> bool:
        return is_same_day(day, (clock or SystemClock()).today())
