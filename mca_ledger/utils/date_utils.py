"""Date normalization and calendar arithmetic.

Spreadsheet exports mix day-count serials, free text and native dates. Everything is
reduced to a plain ``datetime.date`` here so no later stage ever goes through a
time-zone-aware instant.
"""

import math
import re
from datetime import date, datetime, timedelta
from typing import Any, Optional, Union

from dateutil import parser as dateutil_parser

# Day 0 of the spreadsheet serial calendar
EXCEL_EPOCH = date(1899, 12, 30)

# Serials above this include the phantom 1900-02-29
LEAP_YEAR_BUG_THRESHOLD = 60

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

ParsedDate = Union[date, str, None]


def parse_serial_date(serial: float) -> date:
    """
    Convert a spreadsheet day-count serial to a calendar date.

    Serials greater than 60 are shifted back one day to undo the 1900 leap-year
    miscount; the fractional (time-of-day) part is ignored.

    Example:
        61 -> 1900-02-28 (naive epoch arithmetic would give 1900-03-01)
        59 -> 1900-02-27
    """
    days = math.floor(serial)
    if serial > LEAP_YEAR_BUG_THRESHOLD:
        days -= 1
    return EXCEL_EPOCH + timedelta(days=days)


def parse_date(value: Any) -> ParsedDate:
    """
    Normalize a cell value of unknown representation to a calendar date.

    Returns:
        ``date`` on success, ``None`` for empty cells, or the original text when it
        cannot be parsed. Never raises for malformed input.
    """
    if value is None or value is False:
        return None

    if isinstance(value, bool):
        return str(value)

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, (int, float)):
        if value == 0 or (isinstance(value, float) and math.isnan(value)):
            return None
        try:
            return parse_serial_date(value)
        except (OverflowError, ValueError):
            return str(value)

    text = str(value).strip()
    if not text:
        return None

    if ISO_DATE_PATTERN.match(text):
        try:
            return date.fromisoformat(text)
        except ValueError:
            return text

    try:
        return dateutil_parser.parse(text).date()
    except (ValueError, OverflowError):
        return text


def coerce_date(value: Any) -> Optional[date]:
    """Parse a cell and treat the unparseable marker as an absent date"""
    parsed = parse_date(value)
    return parsed if isinstance(parsed, date) else None


def day_diff(start: date, end: date) -> int:
    """Signed number of days from start to end"""
    return (end - start).days


def days_between(first: date, second: date) -> int:
    """Absolute number of days between two dates"""
    return abs((second - first).days)


def fractional_years(start: date, end: date) -> float:
    """Elapsed years as a fraction, floored at zero"""
    return max(0.0, (end - start).days / 365)


def quarter(value: date) -> int:
    return (value.month - 1) // 3 + 1


def cohort_key(value: date) -> str:
    """Vintage cohort key, e.g. ``2024-Q1``"""
    return f"{value.year}-Q{quarter(value)}"
