"""Utility functions for the amortization calculator.

This module provides helpers for turning user input into Python data types and
for handling dates, including adding months and normalizing date strings to
``datetime.date`` instances. Numeric helpers work on ``Decimal`` so that money
amounts are rounded the same way everywhere.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, getcontext
from typing import Any, Optional

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

CENT = Decimal("0.01")


def parse_year_month(ym: str) -> date:
    """Parse a YYYY-MM string into a ``date`` object (first day of month).

    Raises
    ------
    ValueError
        If the string is not a valid year-month.
    """
    try:
        parts = ym.split("-")
        if len(parts) < 2:
            raise ValueError
        year = int(parts[0])
        month = int(parts[1])
        return date(year, month, 1)
    except Exception as exc:
        raise ValueError(f"Invalid year-month string: {ym}") from exc


def parse_date(value: Any) -> date:
    """Parse a due date.

    Accepts ``date``/``datetime`` objects, ISO ``YYYY-MM-DD`` strings and
    ``YYYY-MM`` strings (normalized to the first day of the month).
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if text.count("-") == 1:
        return parse_year_month(text)
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"Invalid date string: {value}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def first_of_month(dt: Optional[date] = None) -> date:
    dt = dt or date.today()
    return dt.replace(day=1)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = value.replace(",", "").strip()
        return Decimal(cleaned)
    except Exception as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc


def coerce_decimal(value: Any) -> Optional[Decimal]:
    """Return ``value`` as a finite ``Decimal`` or None.

    None, empty strings, booleans, NaN, infinities and anything that does not
    parse as a number all yield None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            result = decimal_from_str(text)
        except ValueError:
            return None
    return result if result.is_finite() else None


def coerce_int(value: Any) -> Optional[int]:
    """Return ``value`` as an int if it is a whole number, else None."""
    number = coerce_decimal(value)
    if number is None or number != number.to_integral_value():
        return None
    return int(number)


def round_money(value: Decimal) -> Decimal:
    """Round a monetary amount half-up to cents.

    Raises ``decimal.InvalidOperation`` when the result needs more digits than
    the context precision allows.
    """
    return value.quantize(CENT, rounding=ROUND_HALF_UP)
