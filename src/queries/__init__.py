"""Monthly aggregation package."""

from src.queries.aggregation import (
    AggregationEngine,
    MonthlySummaryService,
    month_bounds,
    to_month_index,
    to_summary_month,
)

__all__ = [
    "AggregationEngine",
    "MonthlySummaryService",
    "month_bounds",
    "to_month_index",
    "to_summary_month",
]
