"""
Permission Policies

Two distinct policies govern mutation, and they are deliberately NOT unified:

1. EditWindowPolicy - time-boxed. Comments (on expenses and calendar
   entries) and calendar entries may be edited or deleted only during a
   short window after creation, regardless of who asks.

2. AdminRolePolicy - role-based. Expenses are an admin surface; they can
   be changed at any time, but only by an admin.

Merging the two would silently tighten or loosen one of the surfaces.

DESIGN DECISION: Policies hold no mutable state. can_edit/can_delete are
computed from (created_at, now) every time they are observed, never stored
on the entity, so a UI that re-renders every second sees the countdown move
without asking the server anything.
"""

from datetime import datetime, timedelta
from typing import Optional, Protocol

from src.errors import PermissionError
from src.permissions.clock import ensure_utc


EDIT_WINDOW = timedelta(minutes=5)

LOCKED_LABEL = "Locked"


class EditWindowPolicy:
    """
    Time-boxed edit/delete permission.

    The window is anchored to creation. An item is modifiable while
    ``now - created_at`` is strictly less than the window:

        can_modify(t, t)                  -> True
        can_modify(t, t + 299.999s)       -> True
        can_modify(t, t + 300s)           -> False

    Clock skew: if ``now`` is earlier than ``created_at`` the item is
    treated as still editable. Callers are expected to pass
    ``now >= created_at``; the lenient answer avoids locking users out
    because two machines disagree about the time.
    """

    def __init__(self, window: timedelta = EDIT_WINDOW):
        if window <= timedelta(0):
            raise ValueError("Edit window must be positive")
        self.window = window

    @classmethod
    def from_settings(cls, app_settings) -> "EditWindowPolicy":
        return cls(window=app_settings.edit_window)

    def can_modify(self, created_at: datetime, now: datetime) -> bool:
        elapsed = ensure_utc(now) - ensure_utc(created_at)
        if elapsed < timedelta(0):
            return True
        return elapsed < self.window

    def can_edit(self, created_at: datetime, now: datetime) -> bool:
        return self.can_modify(created_at, now)

    def can_delete(self, created_at: datetime, now: datetime) -> bool:
        # Same predicate as edit; there is no separate delete window.
        return self.can_modify(created_at, now)

    def remaining(self, created_at: datetime, now: datetime) -> timedelta:
        """Time left in the window, clamped to [0, window]."""
        elapsed = ensure_utc(now) - ensure_utc(created_at)
        left = self.window - max(elapsed, timedelta(0))
        return max(left, timedelta(0))

    def remaining_label(self, created_at: datetime, now: datetime) -> str:
        """
        Countdown for display, e.g. "4m 59s", or "Locked" once closed.
        """
        if not self.can_modify(created_at, now):
            return LOCKED_LABEL
        left = self.remaining(created_at, now)
        total_seconds = int(left.total_seconds())
        minutes, seconds = divmod(total_seconds, 60)
        return f"{minutes}m {seconds}s"

    def ensure_can_modify(
        self,
        created_at: datetime,
        now: datetime,
        subject: str = "Item",
    ) -> None:
        """
        Raise PermissionError if the window has closed.

        Args:
            created_at: Creation instant of the item
            now: Current instant
            subject: What is being modified, used in the message
        """
        if not self.can_modify(created_at, now):
            minutes = int(self.window.total_seconds() // 60)
            raise PermissionError(
                f"{subject} can no longer be changed "
                f"({minutes}-minute window expired)"
            )


class _HasRole(Protocol):
    is_admin: bool


class AdminRolePolicy:
    """
    Role-based permission for the expense surface.

    Time plays no part here. When no actor is supplied the caller is
    trusted: role enforcement for expenses happens upstream of the core.
    """

    def can_modify(self, actor: Optional[_HasRole]) -> bool:
        if actor is None:
            return True
        return bool(getattr(actor, "is_admin", False))

    def ensure_can_modify(
        self,
        actor: Optional[_HasRole],
        subject: str = "Expense",
    ) -> None:
        if not self.can_modify(actor):
            raise PermissionError(f"{subject} can only be changed by an admin")


DEFAULT_EDIT_WINDOW_POLICY = EditWindowPolicy()


def can_modify(created_at: datetime, now: datetime) -> bool:
    """Default 5-minute edit window predicate."""
    return DEFAULT_EDIT_WINDOW_POLICY.can_modify(created_at, now)
