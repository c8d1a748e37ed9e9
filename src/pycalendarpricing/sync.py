"""Synchronization between the in-memory tables and their persistence."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from . import cache as cache_module
from .cache import BaseCache
from .engine import PriceEngine
from .exceptions import AuthError, NetworkError, StoreError
from .models import DateKey, MonthKey, SyncRecord
from .store.base import BaseStore
from .util import normalize_entity_id

_LOGGER = logging.getLogger(__name__)

DEFAULT_COMMIT_DELAY = 0.5
_TRANSPORT_ERRORS = (AuthError, NetworkError, StoreError)


class SyncCoordinator:
    """Loads prices on entry and writes them back as a full replace.

    With an entity id and a store, the remote store is authoritative (edit
    mode). Without one the local cache is used (create mode). Edits are
    reported through ``mark_dirty``; a burst of them is coalesced into one
    trailing commit after ``commit_delay`` seconds.
    """

    def __init__(
        self,
        engine: PriceEngine,
        *,
        store: BaseStore | None = None,
        cache: BaseCache | None = None,
        commit_delay: float = DEFAULT_COMMIT_DELAY,
        horizon_days: int | None = None,
    ) -> None:
        self._engine = engine
        self._store = store
        self._cache = cache
        self._commit_delay = max(0.0, commit_delay)
        self._horizon_days = horizon_days
        self._load_task: asyncio.Task[bool] | None = None
        self._load_entity: str | None = None
        self._commit_lock = asyncio.Lock()
        self._timer: asyncio.TimerHandle | None = None
        self._flush_task: asyncio.Task[bool] | None = None
        self._dirty = False
        self._dirty_entity: str | None = None
        self._generation = 0

    @property
    def engine(self) -> PriceEngine:
        return self._engine

    @property
    def loading(self) -> bool:
        return self._load_task is not None and not self._load_task.done()

    @property
    def dirty(self) -> bool:
        return self._dirty

    def is_edit_mode(self, entity_id: Any) -> bool:
        return normalize_entity_id(entity_id) is not None and self._store is not None

    async def load_month(self, entity_id: Any, month: MonthKey) -> bool:
        """Hydrate state on entry; return whether remote rows were adopted.

        A second call for the same entity while a load is in flight joins
        it instead of starting another round trip.
        """
        entity_value = normalize_entity_id(entity_id)
        if entity_value is None or self._store is None:
            self._load_cached(month)
            return False
        task = self._load_task
        if task is not None and not task.done():
            if self._load_entity == entity_value:
                _LOGGER.debug("Joining in-flight load for %s", entity_value)
                return await task
            await task
            return await self.load_month(entity_value, month)
        self._load_entity = entity_value
        self._load_task = asyncio.ensure_future(self._load_remote(entity_value, month))
        return await self._load_task

    async def _load_remote(self, entity_id: str, month: MonthKey) -> bool:
        engine = self._engine
        generation = self._generation
        self._load_weekend()
        start, end = self._window()
        _LOGGER.debug("Loading prices for %s", entity_id)
        try:
            records = await self._store.query(entity_id, start, end)
        except _TRANSPORT_ERRORS as exc:
            _LOGGER.warning("Loading prices for %s failed, using defaults: %s", entity_id, exc)
            if generation == self._generation:
                engine.ensure_base_prices(month)
            return False
        if generation != self._generation:
            _LOGGER.debug("Discarding stale load for %s", entity_id)
            return False
        if not records:
            _LOGGER.debug("No stored prices for %s, using defaults", entity_id)
            engine.ensure_base_prices(month)
            return False
        engine.adopt_remote(records)
        if engine.settings.default_cost is None:
            first_price = next((record.price for record in records if record.price > 0), None)
            if first_price is not None:
                engine.settings.default_cost = first_price
        engine.ensure_base_prices(month)
        return True

    def _window(self) -> tuple[DateKey | None, DateKey | None]:
        if self._horizon_days is None:
            return None, None
        today = self._engine.today()
        return today, today.shift(self._horizon_days)

    def _load_weekend(self) -> None:
        if self._cache is None:
            return
        weekend = cache_module.load_weekend(self._cache)
        if weekend is not None:
            self._engine.set_weekend_discount(weekend)

    def _load_cached(self, month: MonthKey) -> None:
        engine = self._engine
        if self._cache is not None:
            cache_module.load_settings(self._cache, engine.settings, include_default_cost=True)
            engine.blocked = cache_module.load_blocked(self._cache)
            for cached_month in cache_module.cached_months(self._cache):
                self._adopt_cached(cached_month)
        engine.ensure_base_prices(month)

    def _adopt_cached(self, month: MonthKey) -> bool:
        table = cache_module.load_month(self._cache, month)
        if table is None:
            return False
        self._engine.tables[month] = table
        return True

    def show_month(self, entity_id: Any, month: MonthKey) -> bool:
        """Make ``month`` displayable without a round trip."""
        if not self.is_edit_mode(entity_id) and self._cache is not None:
            if month not in self._engine.tables:
                self._adopt_cached(month)
        return self._engine.ensure_base_prices(month)

    def build_records(self, entity_id: str) -> list[SyncRecord]:
        return [
            SyncRecord(entity_id=entity_id, date=record.date, price=record.price)
            for record in self._engine.snapshot_records()
        ]

    async def commit(self, entity_id: Any) -> bool:
        """Persist the full current table; return whether it succeeded."""
        async with self._commit_lock:
            return await self._commit(normalize_entity_id(entity_id))

    async def _commit(self, entity_id: str | None) -> bool:
        if entity_id is None or self._store is None:
            return self.save_local()
        if self._cache is not None:
            cache_module.save_weekend(self._cache, self._engine.settings.weekend)
        records = self.build_records(entity_id)
        if not records:
            _LOGGER.warning("Nothing to save for %s", entity_id)
            return False
        _LOGGER.debug("Saving %d prices for %s", len(records), entity_id)
        try:
            await self._store.delete_all(entity_id)
        except _TRANSPORT_ERRORS as exc:
            _LOGGER.warning("Deleting stored prices for %s failed: %s", entity_id, exc)
            return False
        try:
            await self._store.insert_many(records)
        except _TRANSPORT_ERRORS as exc:
            _LOGGER.warning(
                "Inserting prices for %s failed after delete, store is empty: %s",
                entity_id,
                exc,
            )
            return False
        _LOGGER.debug("Saved %d prices for %s", len(records), entity_id)
        return True

    def save_local(self) -> bool:
        if self._cache is None:
            return False
        engine = self._engine
        for table in engine.tables.values():
            cache_module.save_month(self._cache, table)
        cache_module.save_blocked(self._cache, engine.blocked)
        cache_module.save_settings(self._cache, engine.settings)
        return True

    def mark_dirty(self, entity_id: Any = None) -> None:
        """Schedule a trailing commit, restarting the delay on every call."""
        self._dirty = True
        self._dirty_entity = normalize_entity_id(entity_id)
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet; the next flush() picks the edit up.
            return
        self._timer = loop.call_later(self._commit_delay, self._start_flush)

    def _start_flush(self) -> None:
        self._timer = None
        self._flush_task = asyncio.ensure_future(self.flush())

    async def flush(self) -> bool:
        """Commit pending edits now."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if not self._dirty:
            return True
        async with self._commit_lock:
            if not self._dirty:
                return True
            self._dirty = False
            return await self._commit(self._dirty_entity)

    def invalidate(self) -> None:
        """Forget pending work so in-flight loads cannot resurrect old state."""
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._dirty = False

    def reset(self) -> None:
        """Invalidate and drop every cached calendar entry."""
        self.invalidate()
        if self._cache is not None:
            cache_module.clear_calendar_data(self._cache)

    async def aclose(self) -> None:
        await self.flush()
        task = self._flush_task
        if task is not None and not task.done():
            await task
