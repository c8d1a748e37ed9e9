"""Calendar manager wiring host events to the pricing core."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from .cache import BaseCache
from .config import CalendarSettings, WeekendDiscount
from .engine import PriceEngine
from .grid import can_navigate_back, month_grid
from .models import DateKey, MonthKey, PriceStatus
from .selection import RangeSelection, SelectionEvent, SelectionPhase
from .store.base import BaseStore
from .sync import DEFAULT_COMMIT_DELAY, SyncCoordinator
from .util import format_date_range, normalize_entity_id, parse_percent, parse_price

_LOGGER = logging.getLogger(__name__)

INDICATOR_PAST = "past"
INDICATOR_BLOCKED = "blocked"
INDICATOR_SELECTED = "selected"
INDICATOR_EXCLUDED = "excluded"
INDICATOR_DISCOUNTED = "discounted"
INDICATOR_WEEKEND_DISCOUNTED = "weekend_discounted"
INDICATOR_HOVER_PREVIEW = "hover_preview"
INDICATOR_AWAITING_SECOND_CLICK = "awaiting_second_click"
INDICATOR_FROM_REMOTE = "from_remote"

_STATUS_INDICATORS = {
    PriceStatus.PAST: INDICATOR_PAST,
    PriceStatus.BLOCKED: INDICATOR_BLOCKED,
    PriceStatus.DISCOUNTED: INDICATOR_DISCOUNTED,
    PriceStatus.WEEKEND_DISCOUNTED: INDICATOR_WEEKEND_DISCOUNTED,
}


@dataclass(frozen=True, slots=True)
class DayCell:
    """One of the 42 grid cells; ``date`` is ``None`` for blank cells."""

    date: DateKey | None
    price: int | None = None
    status: PriceStatus | None = None
    indicators: frozenset[str] = field(default_factory=frozenset)


class CalendarManager:
    """Single entry point for a host UI.

    Every mutating call returns whether anything changed and, when it did,
    schedules a debounced commit through the coordinator. Calls that need a
    visible month are no-ops until ``start`` or ``show_month`` ran.
    """

    def __init__(
        self,
        settings: CalendarSettings | None = None,
        *,
        today: date | DateKey | None = None,
        entity_id: Any = None,
        store: BaseStore | None = None,
        cache: BaseCache | None = None,
        commit_delay: float = DEFAULT_COMMIT_DELAY,
        horizon_days: int | None = None,
    ) -> None:
        self.engine = PriceEngine(settings, today=today)
        self.selection = RangeSelection(self.engine)
        self.coordinator = SyncCoordinator(
            self.engine,
            store=store,
            cache=cache,
            commit_delay=commit_delay,
            horizon_days=horizon_days,
        )
        self._entity_id = normalize_entity_id(entity_id)
        self._month: MonthKey | None = None

    async def __aenter__(self) -> CalendarManager:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    @property
    def entity_id(self) -> str | None:
        return self._entity_id

    @property
    def current_month(self) -> MonthKey | None:
        return self._month

    @property
    def edit_mode(self) -> bool:
        return self.coordinator.is_edit_mode(self._entity_id)

    async def start(self, month: MonthKey | None = None) -> bool:
        """Show ``month`` (default: the current one) and load stored prices."""
        self._month = month if month is not None else self.engine.today().month_key
        _LOGGER.debug("Starting calendar at %s", self._month)
        return await self.coordinator.load_month(self._entity_id, self._month)

    async def refresh(self) -> bool:
        if self._month is None:
            return False
        return await self.coordinator.load_month(self._entity_id, self._month)

    def show_month(self, month: MonthKey) -> bool:
        self._month = month
        return self.coordinator.show_month(self._entity_id, month)

    def next_month(self) -> bool:
        if self._month is None:
            return False
        self.show_month(self._month.next())
        return True

    def previous_month(self) -> bool:
        if self._month is None or not can_navigate_back(self._month, self.engine.today()):
            return False
        self.show_month(self._month.previous())
        return True

    def click(self, value: DateKey) -> SelectionEvent:
        if self._month is None:
            return SelectionEvent.IGNORED
        event = self.selection.click(value)
        self._mark(event.mutates)
        return event

    def hover(self, value: DateKey) -> frozenset[DateKey]:
        if self._month is None:
            return frozenset()
        return self.selection.hover(value)

    def leave(self) -> None:
        self.selection.leave()

    def apply(self, percent_text: Any = "") -> SelectionEvent:
        event = self.selection.apply(percent_text)
        self._mark(event.mutates)
        return event

    def cancel(self) -> SelectionEvent:
        event = self.selection.cancel()
        self._mark(event.mutates)
        return event

    def set_blocking_mode(self, enabled: bool) -> None:
        self.selection.set_blocking_mode(enabled)

    def set_weekend_discount(self, enabled: bool, percent_text: Any = "") -> bool:
        setting = WeekendDiscount(enabled=bool(enabled), percent=parse_percent(percent_text))
        return self._mark(self.engine.set_weekend_discount(setting))

    def set_default_cost(self, text: Any) -> bool:
        cost = parse_price(text)
        if not cost:
            _LOGGER.debug("Ignoring default cost %r", text)
            return False
        return self._mark(self.engine.set_default_cost(cost))

    def set_price(self, value: DateKey, text: Any) -> bool:
        price = parse_price(text)
        if price is None or self.engine.is_past(value):
            return False
        return self._mark(self.engine.set_price(value, price))

    def block_date(self, value: DateKey) -> bool:
        if self.engine.is_past(value):
            return False
        return self._mark(self.engine.block_date(value))

    def unblock_date(self, value: DateKey) -> bool:
        return self._mark(self.engine.unblock_date(value))

    def clear_all_data(self) -> bool:
        """Forget every price, block, range and the weekend rule."""
        self.engine.clear()
        self.engine.settings.weekend = WeekendDiscount()
        self.selection.reset()
        self.coordinator.reset()
        if self._month is not None:
            self.engine.ensure_base_prices(self._month)
        _LOGGER.debug("Calendar data cleared")
        return self._mark(True)

    def cells(self) -> list[DayCell]:
        if self._month is None:
            return []
        engine = self.engine
        overlay = engine.overlay
        hover = self.selection.hover_preview
        temp_start = self.selection.state.temp_start
        cells: list[DayCell] = []
        for value in month_grid(self._month):
            if value is None:
                cells.append(DayCell(None))
                continue
            resolution = engine.resolve_price(value)
            indicators: set[str] = set()
            status_indicator = _STATUS_INDICATORS.get(resolution.status)
            if status_indicator is not None:
                indicators.add(status_indicator)
            if overlay.in_any_range(value):
                if overlay.is_excluded(value):
                    indicators.add(INDICATOR_EXCLUDED)
                else:
                    indicators.add(INDICATOR_SELECTED)
            if value in hover:
                indicators.add(INDICATOR_HOVER_PREVIEW)
            if value == temp_start:
                indicators.add(INDICATOR_AWAITING_SECOND_CLICK)
            if resolution.from_remote:
                indicators.add(INDICATOR_FROM_REMOTE)
            cells.append(
                DayCell(value, resolution.price, resolution.status, frozenset(indicators))
            )
        return cells

    def chosen_dates(self) -> str | None:
        """Label of the latest range, e.g. ``"05 - 10 March"``."""
        date_range = self.engine.overlay.last_range()
        return format_date_range(date_range) if date_range is not None else None

    @property
    def phase(self) -> SelectionPhase:
        return self.selection.phase

    async def flush(self) -> bool:
        return await self.coordinator.flush()

    async def aclose(self) -> None:
        await self.coordinator.aclose()

    def _mark(self, changed: bool) -> bool:
        if changed:
            self.coordinator.mark_dirty(self._entity_id)
        return changed
