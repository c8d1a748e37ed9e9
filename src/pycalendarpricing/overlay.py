"""Committed ranges, carve-outs and per-date range discounts."""

from __future__ import annotations

import logging

from .grid import is_past
from .models import DateKey, DateRange

_LOGGER = logging.getLogger(__name__)


class DiscountOverlay:
    """Per-date price overrides produced by "apply discount to range".

    Only the most recent range can receive a discount; older ranges are kept
    so their dates still count as selected.
    """

    def __init__(self) -> None:
        self._ranges: list[DateRange] = []
        self._excluded: set[DateKey] = set()
        self._discounts: dict[DateKey, int] = {}
        self._applied: dict[DateRange, int] = {}

    @property
    def ranges(self) -> list[DateRange]:
        return list(self._ranges)

    @property
    def excluded(self) -> frozenset[DateKey]:
        return frozenset(self._excluded)

    @property
    def discounts(self) -> dict[DateKey, int]:
        return dict(self._discounts)

    def push_range(self, date_range: DateRange) -> None:
        self._ranges.append(date_range)

    def last_range(self) -> DateRange | None:
        return self._ranges[-1] if self._ranges else None

    def pop_range(self) -> DateRange | None:
        if not self._ranges:
            return None
        date_range = self._ranges.pop()
        self._applied.pop(date_range, None)
        for value in date_range.dates():
            self._discounts.pop(value, None)
            self._excluded.discard(value)
        _LOGGER.debug("Range %s..%s canceled", date_range.start.iso(), date_range.end.iso())
        return date_range

    def in_any_range(self, value: DateKey) -> bool:
        return any(date_range.contains(value) for date_range in self._ranges)

    def is_excluded(self, value: DateKey) -> bool:
        return value in self._excluded

    def discount_for(self, value: DateKey) -> int | None:
        return self._discounts.get(value)

    def exclude(self, value: DateKey) -> bool:
        if value in self._excluded:
            return False
        self._excluded.add(value)
        self._discounts.pop(value, None)
        return True

    def include(self, value: DateKey) -> bool:
        if value not in self._excluded:
            return False
        self._excluded.discard(value)
        for date_range in reversed(self._ranges):
            price = self._applied.get(date_range)
            if price is not None and date_range.contains(value):
                self._discounts[value] = price
                break
        return True

    def apply_to_last_range(self, price: int, today: DateKey) -> list[DateKey]:
        """Discount every non-past, non-excluded day of the latest range."""
        date_range = self.last_range()
        if date_range is None:
            return []
        self._applied[date_range] = price
        touched: list[DateKey] = []
        for value in date_range.dates():
            if is_past(value, today) or value in self._excluded:
                continue
            self._discounts[value] = price
            touched.append(value)
        _LOGGER.debug(
            "Discount %s applied to %d dates of %s..%s",
            price,
            len(touched),
            date_range.start.iso(),
            date_range.end.iso(),
        )
        return touched

    def clear(self) -> None:
        self._ranges.clear()
        self._excluded.clear()
        self._discounts.clear()
        self._applied.clear()
