"""Month grid generation, independent of any price data."""

from __future__ import annotations

from datetime import date

from .models import DateKey, MonthKey

GRID_CELLS = 42
WEEK_DAYS = 7


def month_grid(month: MonthKey) -> list[DateKey | None]:
    """Return the 6x7 Monday-first layout of ``month``; blanks are ``None``."""
    leading = month.first_day.weekday
    cells: list[DateKey | None] = [None] * leading
    cells.extend(month.day(number) for number in range(1, month.days_in_month + 1))
    cells.extend([None] * (GRID_CELLS - len(cells)))
    return cells


def weeks(month: MonthKey) -> list[list[DateKey | None]]:
    cells = month_grid(month)
    return [cells[index : index + WEEK_DAYS] for index in range(0, GRID_CELLS, WEEK_DAYS)]


def visible_dates(month: MonthKey) -> list[DateKey]:
    return [cell for cell in month_grid(month) if cell is not None]


def is_past(value: DateKey, today: DateKey) -> bool:
    # Today stays bookable.
    return value < today


def today_key(today: date | DateKey | None = None) -> DateKey:
    if today is None:
        return DateKey.from_date(date.today())
    if isinstance(today, DateKey):
        return today
    return DateKey.from_date(today)


def can_navigate_back(month: MonthKey, today: DateKey) -> bool:
    """Whether the month before ``month`` is still current or in the future."""
    return month.previous() >= today.month_key
