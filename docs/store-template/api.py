"""Store template implementation."""

from __future__ import annotations

from collections.abc import Sequence

from pycalendarpricing.exceptions import StoreError
from pycalendarpricing.models import DateKey, SyncRecord
from pycalendarpricing.store.base import BaseStore


class Store(BaseStore):
    """Template store implementation."""

    async def query(
        self,
        entity_id: str,
        start: DateKey | None = None,
        end: DateKey | None = None,
    ) -> list[SyncRecord]:
        entity_value = self._require_entity_id(entity_id)
        self._validate_window(start, end)
        data = await self._request_json("GET", f"/prices/{entity_value}")
        return self._map_records(entity_value, data)

    async def delete_all(self, entity_id: str) -> None:
        self._require_entity_id(entity_id)
        raise StoreError("Template store does not implement delete_all.")

    async def insert_many(self, records: Sequence[SyncRecord]) -> None:
        self._validate_records(records)
        raise StoreError("Template store does not implement insert_many.")
