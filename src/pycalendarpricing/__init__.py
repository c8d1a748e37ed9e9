"""pyCalendarPricing package."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from .cache import JsonFileCache, MemoryCache
from .client import Client
from .config import DEFAULT_COST, CalendarSettings, WeekendDiscount
from .engine import PriceEngine, apply_discount
from .exceptions import (
    AuthError,
    ConfigError,
    NetworkError,
    PyCalendarPricingError,
    StoreError,
    ValidationError,
)
from .manager import CalendarManager, DayCell
from .models import (
    DateKey,
    DateRange,
    MonthKey,
    PriceRecord,
    PriceStatus,
    Resolution,
    StoreInfo,
    SyncRecord,
)
from .selection import RangeSelection, SelectionEvent, SelectionPhase
from .sync import SyncCoordinator

try:
    __version__ = version("pycalendarpricing")
except PackageNotFoundError:  # pragma: no cover - not installed
    __version__ = "0.0.0"

__all__ = [
    "DEFAULT_COST",
    "AuthError",
    "CalendarManager",
    "CalendarSettings",
    "Client",
    "ConfigError",
    "DateKey",
    "DateRange",
    "DayCell",
    "JsonFileCache",
    "MemoryCache",
    "MonthKey",
    "NetworkError",
    "PriceEngine",
    "PriceRecord",
    "PriceStatus",
    "PyCalendarPricingError",
    "RangeSelection",
    "Resolution",
    "SelectionEvent",
    "SelectionPhase",
    "StoreError",
    "StoreInfo",
    "SyncCoordinator",
    "SyncRecord",
    "ValidationError",
    "WeekendDiscount",
    "__version__",
    "apply_discount",
]
