"""Shared utilities for input coercion and formatting."""

from __future__ import annotations

import calendar
import math
import re
from typing import Any

from .exceptions import ValidationError
from .models import DateRange

_NON_NUMERIC_RE = re.compile(r"[^\d.]")
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def parse_percent(value: Any) -> float:
    """Coerce a discount entry such as ``"15%"`` to a number.

    Anything that is not a digit or a dot is stripped before parsing, so a
    malformed entry degrades to 0 instead of raising.
    """
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, int | float):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    if not isinstance(value, str):
        return 0.0
    numeric = _NON_NUMERIC_RE.sub("", value)
    match = re.match(r"\d*\.?\d*", numeric)
    text = match.group(0) if match else ""
    if not text or text == ".":
        return 0.0
    try:
        return float(text)
    except ValueError:
        return 0.0


def parse_price(value: Any) -> int | None:
    """Parse a user-entered price, returning ``None`` when unusable."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float):
        if not math.isfinite(value) or value < 0:
            return None
        return int(value)
    if not isinstance(value, str):
        return None
    match = _LEADING_INT_RE.match(value)
    if match is None:
        return None
    parsed = int(match.group(1))
    return parsed if parsed >= 0 else None


def normalize_entity_id(value: Any) -> str | None:
    """Return a trimmed entity id, or ``None`` for create mode."""
    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, str | int):
        raise ValidationError("entity_id must be a string or integer.")
    text = str(value).strip()
    return text or None


def format_date_range(date_range: DateRange) -> str:
    start, end = date_range.start, date_range.end
    if (start.year, start.month) == (end.year, end.month):
        return f"{start.day:02d} - {end.day:02d} {calendar.month_name[start.month]}"
    return (
        f"{start.day:02d} {calendar.month_name[start.month]} - "
        f"{end.day:02d} {calendar.month_name[end.month]}"
    )
