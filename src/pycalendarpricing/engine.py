"""Price resolution over remote, cached, blocked and overlay sources."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable
from datetime import date

from .config import CalendarSettings, WeekendDiscount
from .exceptions import ValidationError
from .grid import is_past, today_key, visible_dates
from .models import DateKey, DateRange, MonthKey, PriceRecord, PriceStatus, Resolution, SyncRecord
from .overlay import DiscountOverlay
from .tables import BlockedDateSet, MonthPriceTable

_LOGGER = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def apply_discount(base: int, percent: float) -> int:
    """Return ``base`` reduced by ``percent``.

    Percentages above 100 are applied as a multiplier (150 yields 1.5x), and
    anything else is clamped to [0, 100] before discounting.
    """
    if percent > 100:
        return _round_half_up(base * percent / 100)
    limited = min(max(percent, 0), 100)
    return _round_half_up(base * (100 - limited) / 100)


class PriceEngine:
    """Owns the pricing state and resolves the displayed price of each date.

    Resolution is a pure read. Mutating helpers return whether anything
    changed so that callers can decide when to persist.
    """

    def __init__(
        self,
        settings: CalendarSettings | None = None,
        *,
        today: date | DateKey | None = None,
    ) -> None:
        self.settings = settings if settings is not None else CalendarSettings()
        self.tables: dict[MonthKey, MonthPriceTable] = {}
        self.blocked = BlockedDateSet()
        self.remote: dict[DateKey, int] = {}
        self.overlay = DiscountOverlay()
        self._today = today_key(today) if today is not None else None

    def today(self) -> DateKey:
        return self._today if self._today is not None else today_key()

    def set_today(self, value: date | DateKey | None) -> None:
        self._today = today_key(value) if value is not None else None

    def default_cost(self) -> int:
        return self.settings.effective_default_cost()

    def is_past(self, value: DateKey) -> bool:
        return is_past(value, self.today())

    def is_blocked(self, value: DateKey) -> bool:
        return self.remote.get(value) == 0 or value in self.blocked

    def resolve_price(self, value: DateKey) -> Resolution:
        if self.is_past(value):
            return Resolution(value, 0, PriceStatus.PAST)
        remote_price = self.remote.get(value)
        from_remote = remote_price is not None
        if self.is_blocked(value):
            return Resolution(value, 0, PriceStatus.BLOCKED, from_remote)
        if remote_price is not None:
            return Resolution(value, remote_price, PriceStatus.AVAILABLE, True)
        overlay = self.overlay
        if overlay.is_excluded(value) and overlay.in_any_range(value):
            return Resolution(value, self.default_cost(), PriceStatus.EXCLUDED)
        discounted = overlay.discount_for(value)
        if discounted is not None:
            return Resolution(value, discounted, PriceStatus.DISCOUNTED)
        weekend = self.settings.weekend
        if weekend.active and value.is_weekend:
            price = apply_discount(self.default_cost(), weekend.percent)
            return Resolution(value, price, PriceStatus.WEEKEND_DISCOUNTED)
        table = self.tables.get(value.month_key)
        cached = table.get(value) if table is not None else None
        return Resolution(
            value,
            cached if cached is not None else self.default_cost(),
            PriceStatus.DEFAULT,
        )

    def resolve_month(self, month: MonthKey) -> list[Resolution]:
        return [self.resolve_price(value) for value in visible_dates(month)]

    def base_price(self, value: DateKey) -> int:
        """Price a fresh record gets, before any range overlay."""
        if self.is_past(value) or self.is_blocked(value):
            return 0
        weekend = self.settings.weekend
        if weekend.active and value.is_weekend:
            return apply_discount(self.default_cost(), weekend.percent)
        return self.default_cost()

    def table(self, month: MonthKey) -> MonthPriceTable:
        table = self.tables.get(month)
        if table is None:
            table = MonthPriceTable(month, self.default_cost())
            self.tables[month] = table
        return table

    def ensure_base_prices(self, month: MonthKey) -> bool:
        table = self.table(month)
        added = 0
        for value in visible_dates(month):
            if value in table:
                continue
            table.set(value, self.base_price(value))
            added += 1
        if added:
            _LOGGER.debug("Materialized %d prices for %s", added, month)
        return added > 0

    def block_range(self, start: DateKey, end: DateKey) -> list[DateKey]:
        date_range = DateRange.normalized(start, end)
        changed: list[DateKey] = []
        for value in date_range.dates():
            added = self.blocked.add(value)
            table = self.tables.get(value.month_key)
            if table is not None and value in table and table.get(value) != 0:
                table.set(value, 0)
                added = True
            if added:
                changed.append(value)
        _LOGGER.debug("Blocked %d dates in %s..%s", len(changed), start.iso(), end.iso())
        return changed

    def block_date(self, value: DateKey) -> bool:
        return bool(self.block_range(value, value))

    def unblock_date(self, value: DateKey) -> bool:
        if not self.is_blocked(value):
            return False
        self.blocked.discard(value)
        # Back to the default cost, whatever the store held before the block.
        self.remote.pop(value, None)
        table = self.tables.get(value.month_key)
        if table is not None and value in table:
            table.set(value, self.default_cost())
        return True

    def set_price(self, value: DateKey, price: int) -> bool:
        if isinstance(price, bool) or not isinstance(price, int) or price < 0:
            raise ValidationError("price must be a non-negative integer.")
        table = self.table(value.month_key)
        changed = table.get(value) != price or value in self.remote
        self.remote.pop(value, None)
        table.set(value, price)
        return changed

    def set_default_cost(self, cost: int) -> bool:
        if isinstance(cost, bool) or not isinstance(cost, int) or cost <= 0:
            raise ValidationError("Default cost must be a positive integer.")
        if self.settings.default_cost == cost:
            return False
        self.settings.default_cost = cost
        for table in self.tables.values():
            table.default_cost = cost
            self._rewrite(table, lambda value: True)
        _LOGGER.debug("Default cost set to %d", cost)
        return True

    def set_weekend_discount(self, setting: WeekendDiscount) -> bool:
        if setting == self.settings.weekend:
            return False
        self.settings.weekend = setting
        for table in self.tables.values():
            self._rewrite(table, lambda value: value.is_weekend)
        _LOGGER.debug(
            "Weekend discount enabled=%s percent=%s",
            setting.enabled,
            setting.percent,
        )
        return True

    def _rewrite(self, table: MonthPriceTable, predicate: Callable[[DateKey], bool]) -> None:
        for value in table:
            if value in self.remote or not predicate(value):
                continue
            table.set(value, self.base_price(value))

    def snapshot_records(self) -> list[PriceRecord]:
        """Every materialized date with the price it currently resolves to."""
        records: list[PriceRecord] = []
        for month in sorted(self.tables):
            for value in self.tables[month]:
                records.append(PriceRecord(value, self.resolve_price(value).price))
        return records

    def adopt_remote(self, records: Iterable[SyncRecord]) -> int:
        """Replace tables and blocks with authoritative remote rows."""
        self.tables.clear()
        self.blocked.clear()
        self.remote.clear()
        count = 0
        for record in records:
            month = record.date.month_key
            self.table(month).set(record.date, record.price)
            self.remote[record.date] = record.price
            if record.price == 0:
                self.blocked.add(record.date)
            count += 1
        _LOGGER.debug("Adopted %d remote prices across %d months", count, len(self.tables))
        return count

    def clear(self) -> None:
        self.tables.clear()
        self.blocked.clear()
        self.remote.clear()
        self.overlay.clear()
