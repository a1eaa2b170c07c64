"""
Period keys and default period selection.

Months are addressed by their literal "YYYY-MM" key and years by integer.
Nothing here looks at timezones: the key a date produces is the key its
calendar fields spell out.
"""

import re
from datetime import date
from typing import Iterable, Optional

from finance_tracker.errors import ValidationError


_MONTH_KEY_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


def month_key(year: int, month: int) -> str:
    """Build a YYYY-MM key."""
    if not 1 <= month <= 12:
        raise ValidationError("month", f"month must be 1-12, got {month}")
    if year <= 0:
        raise ValidationError("year", f"year must be positive, got {year}")
    return f"{year:04d}-{month:02d}"


def parse_month_key(key: str) -> tuple[int, int]:
    """
    Split a YYYY-MM key into (year, month).

    Raises:
        ValidationError: if the key is malformed or the month is out of range
    """
    match = _MONTH_KEY_PATTERN.match(key or "")
    if match is None:
        raise ValidationError("month", f"month must be formatted YYYY-MM, got {key!r}")
    year, month = int(match.group(1)), int(match.group(2))
    if year <= 0 or not 1 <= month <= 12:
        raise ValidationError("month", f"not a calendar month: {key!r}")
    return year, month


def validate_year(year: int) -> int:
    if isinstance(year, bool) or not isinstance(year, int) or year <= 0:
        raise ValidationError("year", f"year must be a positive integer, got {year!r}")
    return year


def current_month(today: Optional[date] = None) -> str:
    today = today or date.today()
    return month_key(today.year, today.month)


def current_year(today: Optional[date] = None) -> int:
    return (today or date.today()).year


def default_month(months: Iterable[str], today: Optional[date] = None) -> str:
    """
    Month to show first.

    The current month if it has data, otherwise the most recent month with
    data, otherwise the current month.
    """
    this_month = current_month(today)
    available = sorted(set(months), reverse=True)
    if this_month in available:
        return this_month
    return available[0] if available else this_month


def default_year(years: Iterable[int], today: Optional[date] = None) -> int:
    """Same rule as default_month, for years."""
    this_year = current_year(today)
    available = sorted(set(years), reverse=True)
    if this_year in available:
        return this_year
    return available[0] if available else this_year


def month_options(start_year: int, today: Optional[date] = None) -> list[str]:
    """Every month key from January of start_year through today, newest first."""
    today = today or date.today()
    validate_year(start_year)
    keys = []
    for year in range(start_year, today.year + 1):
        last_month = today.month if year == today.year else 12
        for month in range(1, last_month + 1):
            keys.append(month_key(year, month))
    keys.reverse()
    return keys
