"""Per-month price tables and blocked-date sets."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from .exceptions import ValidationError
from .models import DateKey, MonthKey, PriceRecord


def _validate_price(price: Any) -> int:
    if isinstance(price, bool) or not isinstance(price, int):
        raise ValidationError("price must be an integer.")
    if price < 0:
        raise ValidationError("price must not be negative.")
    return price


class MonthPriceTable:
    """Prices for the days of one month, at most one record per date."""

    def __init__(self, month: MonthKey, default_cost: int) -> None:
        self.month = month
        self.default_cost = default_cost
        self._prices: dict[DateKey, int] = {}

    def __contains__(self, value: object) -> bool:
        return value in self._prices

    def __len__(self) -> int:
        return len(self._prices)

    def __iter__(self) -> Iterator[DateKey]:
        return iter(sorted(self._prices))

    def get(self, value: DateKey) -> int | None:
        return self._prices.get(value)

    def set(self, value: DateKey, price: int) -> None:
        self._check_month(value)
        self._prices[value] = _validate_price(price)

    def setdefault(self, value: DateKey, price: int) -> bool:
        """Insert ``price`` unless the date already has a record."""
        if value in self._prices:
            return False
        self.set(value, price)
        return True

    def records(self) -> list[PriceRecord]:
        return [PriceRecord(date=key, price=self._prices[key]) for key in sorted(self._prices)]

    def to_payload(self) -> dict[str, Any]:
        return {
            "defaultCost": self.default_cost,
            "prices": [
                {"date": record.date.display(), "price": record.price}
                for record in self.records()
            ],
        }

    @classmethod
    def from_payload(cls, month: MonthKey, data: Mapping[str, Any]) -> MonthPriceTable:
        if not isinstance(data, Mapping):
            raise ValidationError("Month data must be a mapping.")
        default_cost = data.get("defaultCost")
        if isinstance(default_cost, bool) or not isinstance(default_cost, int):
            raise ValidationError("Month data defaultCost must be an integer.")
        table = cls(month, default_cost)
        prices = data.get("prices") or []
        if not isinstance(prices, list):
            raise ValidationError("Month data prices must be a list.")
        for item in prices:
            if not isinstance(item, Mapping):
                continue
            value = DateKey.from_display(item.get("date"))
            if value.month_key != month:
                continue
            table.set(value, item.get("price", 0) or 0)
        return table

    def _check_month(self, value: DateKey) -> None:
        if value.month_key != self.month:
            raise ValidationError(f"{value.iso()} does not belong to {self.month}.")


class BlockedDateSet:
    """Dates forced to be unavailable, grouped by month."""

    def __init__(self) -> None:
        self._months: dict[MonthKey, set[DateKey]] = {}

    def __contains__(self, value: object) -> bool:
        if not isinstance(value, DateKey):
            return False
        dates = self._months.get(value.month_key)
        return dates is not None and value in dates

    def __bool__(self) -> bool:
        return bool(self._months)

    def add(self, value: DateKey) -> bool:
        dates = self._months.setdefault(value.month_key, set())
        if value in dates:
            return False
        dates.add(value)
        return True

    def discard(self, value: DateKey) -> bool:
        month = value.month_key
        dates = self._months.get(month)
        if dates is None or value not in dates:
            return False
        dates.discard(value)
        if not dates:
            del self._months[month]
        return True

    def update(self, values: Iterable[DateKey]) -> None:
        for value in values:
            self.add(value)

    def for_month(self, month: MonthKey) -> list[DateKey]:
        return sorted(self._months.get(month, ()))

    def months(self) -> list[MonthKey]:
        return sorted(self._months)

    def clear(self) -> None:
        self._months.clear()

    def to_payload(self) -> dict[str, list[dict[str, Any]]]:
        return {
            str(month): [{"date": value.display(), "price": 0} for value in self.for_month(month)]
            for month in self.months()
        }

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> BlockedDateSet:
        if not isinstance(data, Mapping):
            raise ValidationError("Blocked dates must be a mapping.")
        blocked = cls()
        for month_text, items in data.items():
            month = MonthKey.parse(month_text)
            if not isinstance(items, list):
                continue
            for item in items:
                # Older payloads stored bare date strings.
                raw = item.get("date") if isinstance(item, Mapping) else item
                value = DateKey.from_display(raw)
                if value.month_key == month:
                    blocked.add(value)
        return blocked
