"""
Error Taxonomy for Household Expenses

Every error a caller can see is one of four kinds:

- ValidationError: malformed input (empty text, non-positive amount,
  missing field). Surfaced to the caller, never retried.
- PermissionError: the edit window has closed or a role check failed.
  The window cannot be reopened, so there is no retry path.
- NotFoundError: the referenced comment, entry or expense is gone.
  The caller refreshes its view.
- TransportError: the remote store or another collaborator failed.
  Reads used only for display degrade to defaults; mutations surface it.

None of these are fatal to the process.

NOTE: PermissionError shadows the builtin inside modules
that import it from here. Import it by name from this module.
"""


class ExpenseTrackerError(Exception):
    """Base exception for all caller-visible errors."""
    pass


class ValidationError(ExpenseTrackerError):
    """Input failed validation."""
    pass


class PermissionError(ExpenseTrackerError):
    """The operation is not allowed (window expired or role check failed)."""
    pass


class NotFoundError(ExpenseTrackerError):
    """The referenced entity does not exist."""
    pass


class TransportError(ExpenseTrackerError):
    """A remote collaborator could not be reached or failed."""
    pass
