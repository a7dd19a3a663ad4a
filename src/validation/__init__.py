"""Input validation package."""

from src.validation.validator import (
    build_model,
    coerce_id,
    describe_errors,
    parse_model,
    require_date,
    require_id,
    require_non_negative_amount,
    require_positive_amount,
    require_text,
    to_day,
    to_decimal,
)

__all__ = [
    "build_model",
    "coerce_id",
    "describe_errors",
    "parse_model",
    "require_date",
    "require_id",
    "require_non_negative_amount",
    "require_positive_amount",
    "require_text",
    "to_day",
    "to_decimal",
]
