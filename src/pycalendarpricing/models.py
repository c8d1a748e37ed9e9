"""Public data models."""

from __future__ import annotations

import calendar
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Any

from .exceptions import ValidationError


@dataclass(frozen=True, slots=True, order=True)
class DateKey:
    """A calendar day, independent of any display format.

    Field order makes the generated comparisons chronological.
    """

    year: int
    month: int
    day: int

    def __post_init__(self) -> None:
        for field_name in ("year", "month", "day"):
            value = getattr(self, field_name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(f"{field_name} must be an integer.")
        try:
            date(self.year, self.month, self.day)
        except ValueError as exc:
            raise ValidationError("Not a valid calendar date.") from exc

    @classmethod
    def from_date(cls, value: date) -> DateKey:
        return cls(value.year, value.month, value.day)

    @classmethod
    def from_iso(cls, value: str) -> DateKey:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError("Date must be a non-empty string.")
        try:
            parsed = date.fromisoformat(value.strip()[:10])
        except ValueError as exc:
            raise ValidationError("Date is not a valid ISO 8601 value.") from exc
        return cls.from_date(parsed)

    @classmethod
    def from_display(cls, value: str) -> DateKey:
        """Parse the ``DD.MM.YYYY`` form used by the local cache."""
        if not isinstance(value, str):
            raise ValidationError("Date must be a string.")
        parts = value.strip().split(".")
        if len(parts) != 3:
            raise ValidationError("Date must use the DD.MM.YYYY format.")
        try:
            day, month, year = (int(part) for part in parts)
        except ValueError as exc:
            raise ValidationError("Date must use the DD.MM.YYYY format.") from exc
        return cls(year, month, day)

    @property
    def ordinal(self) -> int:
        return self.as_date().toordinal()

    @property
    def weekday(self) -> int:
        return self.as_date().weekday()

    @property
    def is_weekend(self) -> bool:
        return self.weekday >= 5

    @property
    def month_key(self) -> MonthKey:
        return MonthKey(self.year, self.month)

    def as_date(self) -> date:
        return date(self.year, self.month, self.day)

    def shift(self, days: int) -> DateKey:
        return DateKey.from_date(self.as_date() + timedelta(days=days))

    def iso(self) -> str:
        return self.as_date().isoformat()

    def display(self) -> str:
        return f"{self.day:02d}.{self.month:02d}.{self.year}"


@dataclass(frozen=True, slots=True, order=True)
class MonthKey:
    year: int
    month: int

    def __post_init__(self) -> None:
        if isinstance(self.year, bool) or not isinstance(self.year, int) or self.year < 1:
            raise ValidationError("year must be a positive integer.")
        if isinstance(self.month, bool) or not isinstance(self.month, int):
            raise ValidationError("month must be an integer.")
        if not 1 <= self.month <= 12:
            raise ValidationError("month must be between 1 and 12.")

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @classmethod
    def parse(cls, value: str) -> MonthKey:
        if not isinstance(value, str):
            raise ValidationError("Month key must be a string.")
        parts = value.strip().split("-")
        if len(parts) != 2:
            raise ValidationError("Month key must use the YYYY-MM format.")
        try:
            year, month = int(parts[0]), int(parts[1])
        except ValueError as exc:
            raise ValidationError("Month key must use the YYYY-MM format.") from exc
        return cls(year, month)

    @classmethod
    def of(cls, value: date | DateKey) -> MonthKey:
        return cls(value.year, value.month)

    @property
    def days_in_month(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    @property
    def first_day(self) -> DateKey:
        return DateKey(self.year, self.month, 1)

    def day(self, number: int) -> DateKey:
        return DateKey(self.year, self.month, number)

    def next(self) -> MonthKey:
        if self.month == 12:
            return MonthKey(self.year + 1, 1)
        return MonthKey(self.year, self.month + 1)

    def previous(self) -> MonthKey:
        if self.month == 1:
            return MonthKey(self.year - 1, 12)
        return MonthKey(self.year, self.month - 1)


@dataclass(frozen=True, slots=True)
class PriceRecord:
    date: DateKey
    price: int


@dataclass(frozen=True, slots=True)
class DateRange:
    start: DateKey
    end: DateKey

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValidationError("DateRange end must not be before start.")

    @classmethod
    def normalized(cls, first: DateKey, second: DateKey) -> DateRange:
        if second < first:
            first, second = second, first
        return cls(first, second)

    def contains(self, value: DateKey) -> bool:
        return self.start <= value <= self.end

    def dates(self) -> Iterator[DateKey]:
        current = self.start.as_date()
        last = self.end.as_date()
        while current <= last:
            yield DateKey.from_date(current)
            current += timedelta(days=1)


@dataclass(frozen=True, slots=True)
class SyncRecord:
    entity_id: str
    date: DateKey
    price: int

    def to_payload(self) -> dict[str, Any]:
        return {"entity_id": self.entity_id, "date": self.date.iso(), "price": self.price}

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> SyncRecord:
        if not isinstance(data, Mapping):
            raise ValidationError("Sync record must be a mapping.")
        entity_id = data.get("entity_id")
        price = data.get("price")
        if entity_id is None or str(entity_id).strip() == "":
            raise ValidationError("Sync record is missing entity_id.")
        if isinstance(price, bool) or not isinstance(price, int) or price < 0:
            raise ValidationError("Sync record price must be a non-negative integer.")
        return cls(
            entity_id=str(entity_id).strip(),
            date=DateKey.from_iso(data.get("date")),
            price=price,
        )


class PriceStatus(str, Enum):
    AVAILABLE = "available"
    BLOCKED = "blocked"
    PAST = "past"
    EXCLUDED = "excluded"
    DISCOUNTED = "discounted"
    WEEKEND_DISCOUNTED = "weekend_discounted"
    DEFAULT = "default"


@dataclass(frozen=True, slots=True)
class Resolution:
    date: DateKey
    price: int
    status: PriceStatus
    from_remote: bool = False


@dataclass(frozen=True, slots=True)
class StoreInfo:
    id: str
    name: str
    requires_base_url: bool
