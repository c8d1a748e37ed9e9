"""Local key-value cache used in create mode."""

from __future__ import annotations

import json
import logging
import math
import os
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .config import CalendarSettings, WeekendDiscount
from .exceptions import ConfigError, ValidationError
from .models import MonthKey
from .tables import BlockedDateSet, MonthPriceTable

_LOGGER = logging.getLogger(__name__)

MONTH_KEY_PREFIX = "monthData-"
BLOCKED_DATES_KEY = "blockedDatesMap"
GLOBAL_SETTINGS_KEY = "calendarGlobalSettings"
WEEKEND_ENABLED_KEY = "weekendDiscountEnabled"
WEEKEND_PERCENT_KEY = "weekendDiscountPercent"


def month_cache_key(month: MonthKey) -> str:
    return f"{MONTH_KEY_PREFIX}{month}"


class BaseCache(ABC):
    """String key to string value storage."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value or ``None``."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove ``key`` if present."""

    @abstractmethod
    def keys(self) -> list[str]:
        """Return all stored keys."""

    def get_json(self, key: str) -> Any | None:
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            _LOGGER.warning("Ignoring corrupt cache entry %s", key)
            return None

    def set_json(self, key: str, value: Any) -> None:
        self.set(key, json.dumps(value, separators=(",", ":")))


class MemoryCache(BaseCache):
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileCache(BaseCache):
    """All entries in one JSON document, rewritten atomically on change."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._data: dict[str, str] | None = None

    def _load(self) -> dict[str, str]:
        if self._data is not None:
            return self._data
        data: dict[str, str] = {}
        if self._path.is_file():
            try:
                raw = json.loads(self._path.read_text(encoding="utf-8"))
            except json.JSONDecodeError:
                _LOGGER.warning("Cache file %s is not valid JSON, starting empty", self._path)
                raw = {}
            except OSError as exc:
                raise ConfigError(f"Cache file {self._path} could not be read.") from exc
            if isinstance(raw, dict):
                data = {str(key): value for key, value in raw.items() if isinstance(value, str)}
        self._data = data
        return data

    def _write(self) -> None:
        data = self._load()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, sort_keys=True)
            os.replace(tmp_name, self._path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        self._load()[key] = value
        self._write()

    def remove(self, key: str) -> None:
        if self._load().pop(key, None) is not None:
            self._write()

    def keys(self) -> list[str]:
        return list(self._load())


def save_month(cache: BaseCache, table: MonthPriceTable) -> None:
    cache.set_json(month_cache_key(table.month), table.to_payload())


def load_month(cache: BaseCache, month: MonthKey) -> MonthPriceTable | None:
    data = cache.get_json(month_cache_key(month))
    if data is None:
        return None
    try:
        return MonthPriceTable.from_payload(month, data)
    except ValidationError:
        _LOGGER.warning("Ignoring malformed cached month %s", month)
        return None


def cached_months(cache: BaseCache) -> list[MonthKey]:
    months: list[MonthKey] = []
    for key in cache.keys():
        if not key.startswith(MONTH_KEY_PREFIX):
            continue
        try:
            months.append(MonthKey.parse(key[len(MONTH_KEY_PREFIX) :]))
        except ValidationError:
            continue
    return sorted(months)


def save_blocked(cache: BaseCache, blocked: BlockedDateSet) -> None:
    if blocked:
        cache.set_json(BLOCKED_DATES_KEY, blocked.to_payload())
    else:
        cache.remove(BLOCKED_DATES_KEY)


def load_blocked(cache: BaseCache) -> BlockedDateSet:
    data = cache.get_json(BLOCKED_DATES_KEY)
    if data is None:
        return BlockedDateSet()
    try:
        return BlockedDateSet.from_payload(data)
    except ValidationError:
        _LOGGER.warning("Ignoring malformed blocked dates map")
        return BlockedDateSet()


def load_settings(
    cache: BaseCache,
    settings: CalendarSettings,
    *,
    include_default_cost: bool = True,
) -> CalendarSettings:
    """Overlay cached values onto ``settings`` and return it.

    The weekend discount is always read; the default cost only when
    ``include_default_cost`` is set, since in edit mode the remote store owns it.
    """
    data = cache.get_json(GLOBAL_SETTINGS_KEY) if include_default_cost else None
    if data is not None:
        try:
            settings.apply_payload(data)
        except ConfigError:
            _LOGGER.warning("Ignoring malformed global settings")
    weekend = load_weekend(cache)
    if weekend is not None:
        settings.weekend = weekend
    return settings


def load_weekend(cache: BaseCache) -> WeekendDiscount | None:
    enabled = cache.get(WEEKEND_ENABLED_KEY) == "true"
    percent = _parse_float(cache.get(WEEKEND_PERCENT_KEY))
    if not enabled and not percent:
        return None
    return WeekendDiscount(enabled=enabled, percent=percent)


def save_settings(cache: BaseCache, settings: CalendarSettings) -> None:
    cache.set_json(GLOBAL_SETTINGS_KEY, settings.to_payload())
    save_weekend(cache, settings.weekend)


def save_weekend(cache: BaseCache, weekend: WeekendDiscount) -> None:
    cache.set(WEEKEND_ENABLED_KEY, "true" if weekend.enabled else "false")
    if weekend.enabled and weekend.percent > 0:
        cache.set(WEEKEND_PERCENT_KEY, _format_number(weekend.percent))
    else:
        cache.remove(WEEKEND_PERCENT_KEY)


def clear_calendar_data(cache: BaseCache, *, include_weekend: bool = True) -> None:
    keys: Iterable[str] = [
        key
        for key in cache.keys()
        if key.startswith(MONTH_KEY_PREFIX) or key == BLOCKED_DATES_KEY
    ]
    for key in keys:
        cache.remove(key)
    if include_weekend:
        cache.remove(WEEKEND_ENABLED_KEY)
        cache.remove(WEEKEND_PERCENT_KEY)


def _parse_float(raw: str | None) -> float:
    if not raw:
        return 0.0
    try:
        value = float(raw)
    except ValueError:
        return 0.0
    return value if math.isfinite(value) else 0.0


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)
