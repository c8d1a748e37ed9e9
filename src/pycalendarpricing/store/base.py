"""Remote store base class and shared request behavior."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import Any

import aiohttp

from ..exceptions import AuthError, NetworkError, StoreError, ValidationError
from ..models import DateKey, StoreInfo, SyncRecord
from ..util import normalize_entity_id
from .loader import StoreManifest

_DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=30)
_LOGGER = logging.getLogger(__name__)


class BaseStore(ABC):
    """Base class for remote price stores.

    A store persists ``(entity_id, date, price)`` rows. Saving is always a
    full replace: ``delete_all`` followed by ``insert_many``.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None,
        manifest: StoreManifest,
        *,
        base_url: str | None = None,
        api_uri: str | None = None,
        api_key: str | None = None,
        timeout: aiohttp.ClientTimeout | None = None,
        retry_count: int = 0,
    ) -> None:
        if session is None and manifest.requires_base_url:
            raise ValidationError("Session is required.")
        missing = manifest.missing_options(base_url=base_url, api_key=api_key)
        if missing:
            raise ValidationError(f"{manifest.name} store requires: {', '.join(missing)}.")
        if api_uri is None:
            api_uri = manifest.default_api_uri
        self._session = session
        self._manifest = manifest
        self._base_url = self._normalize_base_url(base_url)
        self._api_uri = self._normalize_api_uri(api_uri)
        self._api_key = api_key
        self._timeout = timeout or _DEFAULT_TIMEOUT
        self._retry_count = max(0, retry_count)

    @property
    def store_id(self) -> str:
        return self._manifest.id

    @property
    def store_name(self) -> str:
        return self._manifest.name

    @property
    def info(self) -> StoreInfo:
        return self._manifest.to_info()

    def _require_entity_id(self, entity_id: Any) -> str:
        normalized = normalize_entity_id(entity_id)
        if normalized is None:
            raise ValidationError("entity_id is required.")
        return normalized

    def _validate_records(self, records: Iterable[SyncRecord]) -> list[SyncRecord]:
        validated: list[SyncRecord] = []
        for record in records:
            if not isinstance(record, SyncRecord):
                raise ValidationError("records must contain SyncRecord values.")
            if record.price < 0:
                raise ValidationError("Sync record price must not be negative.")
            validated.append(record)
        return validated

    def _validate_window(
        self,
        start: DateKey | None,
        end: DateKey | None,
    ) -> tuple[DateKey | None, DateKey | None]:
        if start is not None and end is not None and end < start:
            raise ValidationError("end must not be before start.")
        return start, end

    def _build_url(self, path: str) -> str:
        if not isinstance(path, str) or not path:
            raise ValidationError("Path must be a non-empty string.")
        if path.startswith("http://") or path.startswith("https://"):
            raise ValidationError("Use relative paths when building store requests.")
        if self._base_url is None:
            raise ValidationError("base_url is required to build store requests.")
        normalized_path = path if path.startswith("/") else f"/{path}"
        return f"{self._base_url}{self._api_uri}{normalized_path}"

    def _build_headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}

    async def _request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        url = self._build_url(path)
        return await self._request(method, url, expect_json=True, **kwargs)

    async def _request_text(self, method: str, path: str, **kwargs: Any) -> str:
        url = self._build_url(path)
        return await self._request(method, url, expect_json=False, **kwargs)

    async def _request(self, method: str, url: str, *, expect_json: bool, **kwargs: Any) -> Any:
        if self._session is None:
            raise ValidationError("Session is required.")
        retries = self._retry_count if method.upper() == "GET" else 0
        attempts = retries + 1
        if "headers" not in kwargs:
            kwargs["headers"] = self._build_headers()
        last_error: Exception | None = None
        for attempt in range(attempts):
            try:
                timeout = kwargs.pop("timeout", self._timeout)
                if timeout is None:
                    timeout = self._timeout
                async with self._session.request(
                    method,
                    url,
                    timeout=timeout,
                    ssl=True,
                    **kwargs,
                ) as response:
                    await self._raise_for_status(response)
                    if expect_json:
                        try:
                            return await response.json()
                        except (aiohttp.ContentTypeError, ValueError) as exc:
                            raise StoreError("Response did not contain valid JSON.") from exc
                    return await response.text()
            except (aiohttp.ClientError, TimeoutError) as exc:
                last_error = exc
                _LOGGER.debug(
                    "Store %s %s attempt %d failed",
                    self.store_id,
                    method,
                    attempt + 1,
                )
                if attempt >= attempts - 1:
                    raise NetworkError("Network request failed.") from exc
        if last_error is not None:
            raise NetworkError("Network request failed.") from last_error
        raise StoreError("Request failed.")

    async def _raise_for_status(self, response: aiohttp.ClientResponse) -> None:
        if 200 <= response.status < 300:
            return
        if response.status in (401, 403):
            raise AuthError("Authentication failed.")
        message = await self._error_message_from_response(response)
        raise StoreError(message or f"Store request failed with status {response.status}.")

    async def _error_message_from_response(self, response: aiohttp.ClientResponse) -> str | None:
        return None

    def _normalize_base_url(self, base_url: str | None) -> str | None:
        if base_url is None:
            return None
        if not isinstance(base_url, str) or not base_url.strip():
            raise ValidationError("base_url must be a non-empty string.")
        return base_url.strip().rstrip("/")

    def _normalize_api_uri(self, api_uri: str | None) -> str:
        if api_uri is None:
            return ""
        if not isinstance(api_uri, str):
            raise ValidationError("api_uri must be a string.")
        normalized = api_uri.strip().strip("/")
        if not normalized:
            return ""
        return f"/{normalized}"

    def _map_records(self, entity_id: str, data: Any) -> list[SyncRecord]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise StoreError("Store response included invalid price rows.")
        records: list[SyncRecord] = []
        for item in data:
            if not isinstance(item, dict):
                continue
            records.append(self._map_record(entity_id, item))
        return records

    def _map_record(self, entity_id: str, item: dict[str, Any]) -> SyncRecord:
        raw = dict(item)
        raw.setdefault("entity_id", entity_id)
        try:
            return SyncRecord.from_payload(raw)
        except ValidationError as exc:
            raise StoreError("Store returned invalid price data.") from exc

    @abstractmethod
    async def query(
        self,
        entity_id: str,
        start: DateKey | None = None,
        end: DateKey | None = None,
    ) -> list[SyncRecord]:
        """Return the stored rows for ``entity_id``, optionally within a window."""

    @abstractmethod
    async def delete_all(self, entity_id: str) -> None:
        """Delete every stored row for ``entity_id``."""

    @abstractmethod
    async def insert_many(self, records: Sequence[SyncRecord]) -> None:
        """Insert ``records`` in one request."""

    async def replace_all(self, entity_id: str, records: Sequence[SyncRecord]) -> None:
        """Delete every row for ``entity_id`` then insert ``records``."""
        entity_value = self._require_entity_id(entity_id)
        validated = self._validate_records(records)
        for record in validated:
            if record.entity_id != entity_value:
                raise ValidationError("All records must belong to entity_id.")
        await self.delete_all(entity_value)
        if validated:
            await self.insert_many(validated)
