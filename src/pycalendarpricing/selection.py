"""Two-click range selection with hover preview."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .engine import PriceEngine, apply_discount
from .models import DateKey, DateRange
from .util import parse_percent

_LOGGER = logging.getLogger(__name__)


class SelectionPhase(str, Enum):
    IDLE = "idle"
    PICKING_END = "picking_end"
    PENDING_DISCOUNT = "pending_discount"


class SelectionEvent(str, Enum):
    IGNORED = "ignored"
    STARTED = "started"
    COMPLETED = "completed"
    EXCLUDED = "excluded"
    INCLUDED = "included"
    APPLIED = "applied"
    BLOCKED = "blocked"
    CANCELED = "canceled"

    @property
    def mutates(self) -> bool:
        return self not in (SelectionEvent.IGNORED, SelectionEvent.STARTED)


@dataclass(slots=True)
class SelectionState:
    temp_start: DateKey | None = None
    is_confirmed: bool = True
    blocking_mode: bool = False


class RangeSelection:
    """Turns clicks and hovers into committed ranges, discounts and blocks."""

    def __init__(self, engine: PriceEngine) -> None:
        self._engine = engine
        self.state = SelectionState()
        self._hover: frozenset[DateKey] = frozenset()

    @property
    def phase(self) -> SelectionPhase:
        if not self.state.is_confirmed:
            return SelectionPhase.PENDING_DISCOUNT
        if self.state.temp_start is not None:
            return SelectionPhase.PICKING_END
        return SelectionPhase.IDLE

    @property
    def hover_preview(self) -> frozenset[DateKey]:
        return self._hover

    def _selectable(self, value: DateKey) -> bool:
        return not self._engine.is_past(value) and not self._engine.is_blocked(value)

    def click(self, value: DateKey) -> SelectionEvent:
        if not self._selectable(value):
            return SelectionEvent.IGNORED
        phase = self.phase
        if phase is SelectionPhase.PENDING_DISCOUNT:
            return SelectionEvent.IGNORED
        if phase is SelectionPhase.PICKING_END:
            return self._complete(value)
        overlay = self._engine.overlay
        if overlay.in_any_range(value):
            if overlay.is_excluded(value):
                overlay.include(value)
                return SelectionEvent.INCLUDED
            overlay.exclude(value)
            return SelectionEvent.EXCLUDED
        self.state.temp_start = value
        _LOGGER.debug("Range start picked at %s", value.iso())
        return SelectionEvent.STARTED

    def _complete(self, value: DateKey) -> SelectionEvent:
        start = self.state.temp_start
        if start is None:
            return SelectionEvent.IGNORED
        date_range = DateRange.normalized(start, value)
        self._engine.overlay.push_range(date_range)
        self.state.temp_start = None
        self.state.is_confirmed = False
        self._hover = frozenset()
        _LOGGER.debug("Range %s..%s committed", date_range.start.iso(), date_range.end.iso())
        return SelectionEvent.COMPLETED

    def hover(self, value: DateKey) -> frozenset[DateKey]:
        start = self.state.temp_start
        if start is None or not self._selectable(value):
            return self._hover
        span = DateRange.normalized(start, value)
        self._hover = frozenset(item for item in span.dates() if self._selectable(item))
        return self._hover

    def leave(self) -> None:
        self._hover = frozenset()

    def set_blocking_mode(self, enabled: bool) -> None:
        self.state.blocking_mode = bool(enabled)

    def apply(self, percent: Any = 0) -> SelectionEvent:
        if self.phase is not SelectionPhase.PENDING_DISCOUNT:
            return SelectionEvent.IGNORED
        engine = self._engine
        date_range = engine.overlay.last_range()
        if self.state.blocking_mode:
            if date_range is not None:
                engine.block_range(date_range.start, date_range.end)
            self._cancel_last()
            return SelectionEvent.BLOCKED
        price = apply_discount(engine.default_cost(), parse_percent(percent))
        engine.overlay.apply_to_last_range(price, engine.today())
        self.state.is_confirmed = True
        return SelectionEvent.APPLIED

    def cancel(self) -> SelectionEvent:
        if self.phase is not SelectionPhase.PENDING_DISCOUNT:
            return SelectionEvent.IGNORED
        self._cancel_last()
        return SelectionEvent.CANCELED

    def _cancel_last(self) -> None:
        self._engine.overlay.pop_range()
        self.state.is_confirmed = True
        self.state.blocking_mode = False

    def reset(self) -> None:
        self.state = SelectionState()
        self._hover = frozenset()
