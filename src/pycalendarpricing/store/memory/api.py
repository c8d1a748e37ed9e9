"""In-memory store implementation."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import aiohttp

from ...models import DateKey, SyncRecord
from ..base import BaseStore
from ..loader import MEMORY_MANIFEST, StoreManifest


class Store(BaseStore):
    """Keeps rows in process memory.

    Useful offline and in tests; ``fail_next`` makes the next call raise the
    given exception to exercise error paths.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        manifest: StoreManifest = MEMORY_MANIFEST,
        *,
        base_url: str | None = None,
        api_uri: str | None = None,
        api_key: str | None = None,
        timeout: aiohttp.ClientTimeout | None = None,
        retry_count: int = 0,
    ) -> None:
        """Initialize the store."""
        super().__init__(
            session,
            manifest,
            base_url=base_url,
            api_uri=api_uri,
            api_key=api_key,
            timeout=timeout,
            retry_count=retry_count,
        )
        self._rows: dict[str, dict[DateKey, int]] = {}
        self._failures: list[tuple[str | None, Exception]] = []
        self.calls: list[str] = []

    def fail_next(self, exc: Exception, *, call: str | None = None) -> None:
        """Raise ``exc`` from the next call, or the next call named ``call``."""
        self._failures.append((call, exc))

    def rows(self, entity_id: str) -> list[SyncRecord]:
        entity_value = self._require_entity_id(entity_id)
        stored = self._rows.get(entity_value, {})
        return [SyncRecord(entity_value, key, stored[key]) for key in sorted(stored)]

    async def query(
        self,
        entity_id: str,
        start: DateKey | None = None,
        end: DateKey | None = None,
    ) -> list[SyncRecord]:
        """Return stored rows ordered by date."""
        await self._step("query")
        start, end = self._validate_window(start, end)
        return [
            record
            for record in self.rows(entity_id)
            if (start is None or record.date >= start) and (end is None or record.date <= end)
        ]

    async def delete_all(self, entity_id: str) -> None:
        """Delete every row of the entity."""
        await self._step("delete_all")
        self._rows.pop(self._require_entity_id(entity_id), None)

    async def insert_many(self, records: Sequence[SyncRecord]) -> None:
        """Insert rows; a date already stored for the entity is overwritten."""
        await self._step("insert_many")
        for record in self._validate_records(records):
            self._rows.setdefault(record.entity_id, {})[record.date] = record.price

    async def _step(self, name: str) -> None:
        self.calls.append(name)
        # Yield like a real round trip would.
        await asyncio.sleep(0)
        for index, (call, exc) in enumerate(self._failures):
            if call is None or call == name:
                del self._failures[index]
                raise exc
