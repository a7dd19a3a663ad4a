"""Permission policies and clocks."""

from src.permissions.clock import Clock, FixedClock, SystemClock, ensure_utc
from src.permissions.policies import (
    DEFAULT_EDIT_WINDOW_POLICY,
    EDIT_WINDOW,
    LOCKED_LABEL,
    AdminRolePolicy,
    EditWindowPolicy,
    can_modify,
)

__all__ = [
    "AdminRolePolicy",
    "Clock",
    "DEFAULT_EDIT_WINDOW_POLICY",
    "EDIT_WINDOW",
    "EditWindowPolicy",
    "FixedClock",
    "LOCKED_LABEL",
    "SystemClock",
    "can_modify",
    "ensure_utc",
]
