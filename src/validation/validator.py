"""
Input Validation

DESIGN DECISION: Validation happens at the edge of every store operation,
before anything is sent to the remote store:

STAGE 1 - FIELD CHECKS:
- Required text present after trimming
- Required identifiers present
- Amounts are numbers and strictly positive (expenses) or non-negative
  (calendar prices, budgets)

STAGE 2 - MODEL CONSTRUCTION:
- The pydantic model enforces types and its own constraints
- Any pydantic failure is translated into our ValidationError so callers
  only ever deal with one error taxonomy

IMPORTANT: Validation NEVER silently fixes input beyond trimming
whitespace. It reports what is wrong.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Type, TypeVar
from uuid import UUID

import pydantic
from pydantic import BaseModel

from src.errors import NotFoundError, ValidationError


ModelT = TypeVar("ModelT", bound=BaseModel)


def require_text(
    value: Optional[str],
    field: str = "text",
    max_length: Optional[int] = None,
) -> str:
    """
    Return the trimmed text, or raise if nothing is left or it is too long.
    """
    if value is None or not str(value).strip():
        raise ValidationError(f"{field.replace('_', ' ').capitalize()} is required")
    text = str(value).strip()
    if max_length is not None and len(text) > max_length:
        raise ValidationError(
            f"{field.replace('_', ' ').capitalize()} must be at most "
            f"{max_length} characters, got {len(text)}"
        )
    return text


def require_id(value: Optional[str], field: str) -> str:
    """A required external identifier (category id, member id)."""
    return require_text(value, field)


def to_day(value):
    """Truncate a datetime to its calendar day; other values pass through."""
    if isinstance(value, datetime):
        return value.date()
    return value


def require_date(value: Optional[date], field: str = "date") -> date:
    """
    A required calendar day. A datetime is truncated to its date, so
    time-of-day never affects which day something belongs to.
    """
    if value is None:
        raise ValidationError(f"{field.replace('_', ' ').capitalize()} is required")
    if not isinstance(value, date):
        raise ValidationError(f"{field} must be a date, got {type(value).__name__}")
    return to_day(value)


def to_decimal(value: Any, field: str = "amount") -> Decimal:
    """Convert int/float/str/Decimal to Decimal, rejecting non-numbers."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field.capitalize()} is required")
    try:
        # str() first so floats like 0.1 don't drag binary noise along
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field.capitalize()} must be a number, got {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"{field.capitalize()} must be a finite number")
    return amount


def require_positive_amount(value: Any, field: str = "amount") -> Decimal:
    amount = to_decimal(value, field)
    if amount <= 0:
        raise ValidationError(f"{field.capitalize()} must be greater than zero")
    return amount


def require_non_negative_amount(value: Any, field: str = "amount") -> Decimal:
    amount = to_decimal(value, field)
    if amount < 0:
        raise ValidationError(f"{field.capitalize()} cannot be negative")
    return amount


def coerce_id(value: Any, what: str = "Item") -> UUID:
    """
    Parse an entity id.

    An id that cannot even be parsed cannot refer to anything we stored,
    so this raises NotFoundError rather than ValidationError.
    """
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise NotFoundError(f"{what} not found: {value}")


def describe_errors(exc: pydantic.ValidationError) -> str:
    """
    Summarise pydantic errors in one line per field.

    Example: "amount: Input should be greater than 0; text: Field required"
    """
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ())) or "input"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


def build_model(model_cls: Type[ModelT], **data: Any) -> ModelT:
    """
    Construct a pydantic model, translating its errors.
    """
    try:
        return model_cls(**data)
    except pydantic.ValidationError as e:
        raise ValidationError(describe_errors(e)) from e


def parse_model(model_cls: Type[ModelT], value: Any) -> ModelT:
    """
    Accept either an instance of model_cls or a mapping of its fields.
    """
    if isinstance(value, model_cls):
        return value
    if value is None:
        return build_model(model_cls)
    if not isinstance(value, dict):
        raise ValidationError(
            f"Expected {model_cls.__name__} or a mapping, got {type(value).__name__}"
        )
    return build_model(model_cls, **value)
