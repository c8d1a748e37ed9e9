"""Supabase store implementation."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from typing import Any

import aiohttp

from ...models import DateKey, SyncRecord
from ..base import BaseStore
from .const import (
    APIKEY_HEADER,
    AUTH_HEADER,
    AUTH_PREFIX,
    DEFAULT_HEADERS,
    ENTITY_COLUMN,
    PERIODS_ENDPOINT,
    PREFER_HEADER,
    PREFER_MINIMAL,
    SELECT_COLUMNS,
)

_LOGGER = logging.getLogger(__name__)


class Store(BaseStore):
    """Store backed by the ``available_periods`` table of a Supabase project."""

    async def query(
        self,
        entity_id: str,
        start: DateKey | None = None,
        end: DateKey | None = None,
    ) -> list[SyncRecord]:
        """Return stored rows ordered by date."""
        entity_value = self._require_entity_id(entity_id)
        start, end = self._validate_window(start, end)
        params: list[tuple[str, str]] = [
            ("select", SELECT_COLUMNS),
            (ENTITY_COLUMN, f"eq.{entity_value}"),
        ]
        if start is not None:
            params.append(("date", f"gte.{start.iso()}"))
        if end is not None:
            params.append(("date", f"lte.{end.iso()}"))
        params.append(("order", "date.asc"))
        _LOGGER.debug("Store %s query started", self.store_id)
        data = await self._request_json("GET", PERIODS_ENDPOINT, params=params)
        records = self._map_records(entity_value, data)
        _LOGGER.debug("Store %s query completed with %d rows", self.store_id, len(records))
        return records

    async def delete_all(self, entity_id: str) -> None:
        """Delete every row of the entity."""
        entity_value = self._require_entity_id(entity_id)
        _LOGGER.debug("Store %s delete_all started", self.store_id)
        await self._request_text(
            "DELETE",
            PERIODS_ENDPOINT,
            params=[(ENTITY_COLUMN, f"eq.{entity_value}")],
        )
        _LOGGER.debug("Store %s delete_all completed", self.store_id)

    async def insert_many(self, records: Sequence[SyncRecord]) -> None:
        """Insert all rows in a single bulk request."""
        validated = self._validate_records(records)
        if not validated:
            return
        payload = [self._build_row(record) for record in validated]
        headers = self._build_headers()
        headers[PREFER_HEADER] = PREFER_MINIMAL
        _LOGGER.debug("Store %s insert_many started with %d rows", self.store_id, len(payload))
        await self._request_text("POST", PERIODS_ENDPOINT, json=payload, headers=headers)
        _LOGGER.debug("Store %s insert_many completed", self.store_id)

    def _build_headers(self) -> dict[str, str]:
        headers = dict(DEFAULT_HEADERS)
        headers[APIKEY_HEADER] = self._api_key
        headers[AUTH_HEADER] = f"{AUTH_PREFIX}{self._api_key}"
        return headers

    def _build_row(self, record: SyncRecord) -> dict[str, Any]:
        return {
            "id": str(uuid.uuid4()),
            ENTITY_COLUMN: self._entity_value(record.entity_id),
            "date": record.date.iso(),
            "price": record.price,
        }

    def _entity_value(self, entity_id: str) -> int | str:
        # The table stores numeric service ids.
        return int(entity_id) if entity_id.isdigit() else entity_id

    def _map_record(self, entity_id: str, item: dict[str, Any]) -> SyncRecord:
        raw = dict(item)
        raw.setdefault("entity_id", item.get(ENTITY_COLUMN, entity_id))
        return super()._map_record(entity_id, raw)

    async def _error_message_from_response(self, response: aiohttp.ClientResponse) -> str | None:
        try:
            data = await response.json()
        except (aiohttp.ContentTypeError, ValueError):
            return None
        if not isinstance(data, dict):
            return None
        message = data.get("message")
        if not isinstance(message, str) or not message.strip():
            return None
        code = data.get("code")
        if isinstance(code, str) and code.strip():
            return f"Store error {code.strip()}: {message.strip()}"
        return f"Store error: {message.strip()}"
