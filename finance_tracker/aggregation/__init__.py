"""
Aggregation Package

Pure functions that turn a flat list of transactions into monthly and
annual summaries, breakdowns and period lists.
"""

from finance_tracker.aggregation.aggregator import (
    annual_data,
    category_breakdown,
    filter_by_type,
    monthly_breakdown,
    monthly_data,
    months_with_data,
    sort_by_date,
    years_with_data,
)
from finance_tracker.aggregation.periods import (
    current_month,
    current_year,
    default_month,
    default_year,
    month_key,
    month_options,
    parse_month_key,
)

__all__ = [
    # Aggregates
    "annual_data",
    "category_breakdown",
    "filter_by_type",
    "monthly_breakdown",
    "monthly_data",
    "months_with_data",
    "sort_by_date",
    "years_with_data",
    # Periods
    "current_month",
    "current_year",
    "default_month",
    "default_year",
    "month_key",
    "month_options",
    "parse_month_key",
]
