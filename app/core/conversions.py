"""Conversion helpers for common type coercion."""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional


def coerce_int(value: object) -> Optional[int]:
    """Return an int for valid string/int inputs, otherwise None."""
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except (TypeError, ValueError):
            return None
    return None


def to_decimal(value: object) -> Optional[Decimal]:
    """Return a Decimal for numeric inputs, going through str for floats."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def as_date(value: date | datetime) -> date:
    """Calendar date of an instant; plain dates pass through."""
    if isinstance(value, datetime):
        return value.date()
    return value
