from __future__ import annotations

import aiohttp
import pytest

from pycalendarpricing.exceptions import AuthError, NetworkError, StoreError, ValidationError
from pycalendarpricing.models import DateKey, SyncRecord
from pycalendarpricing.store.base import BaseStore
from pycalendarpricing.store.loader import StoreManifest


class _FakeResponse:
    def __init__(
        self,
        *,
        status: int = 200,
        json_data: object | None = None,
        text_data: str = "",
        json_error: Exception | None = None,
    ) -> None:
        self.status = status
        self._json_data = json_data
        self._text_data = text_data
        self._json_error = json_error

    async def json(self) -> object:
        if self._json_error is not None:
            raise self._json_error
        return self._json_data

    async def text(self) -> str:
        return self._text_data


class _FakeRequestContext:
    def __init__(self, response: _FakeResponse) -> None:
        self._response = response

    async def __aenter__(self) -> _FakeResponse:
        return self._response

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


class _SequenceSession:
    def __init__(self, results: list[object]) -> None:
        self._results = results
        self.calls = 0

    def request(self, method: str, url: str, **kwargs) -> _FakeRequestContext:
        self.calls += 1
        result = self._results[self.calls - 1]
        if isinstance(result, Exception):
            raise result
        return _FakeRequestContext(result)


class _DummyStore(BaseStore):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.operations: list[str] = []

    async def query(self, entity_id, start=None, end=None):
        return []

    async def delete_all(self, entity_id: str) -> None:
        self.operations.append(f"delete:{entity_id}")

    async def insert_many(self, records) -> None:
        self.operations.append(f"insert:{len(records)}")


def _manifest(*, requires_base_url: bool = True) -> StoreManifest:
    return StoreManifest(id="dummy", name="Dummy", requires_base_url=requires_base_url)


def _store(session: _SequenceSession | None = None, **kwargs) -> _DummyStore:
    kwargs.setdefault("base_url", "https://example.com")
    return _DummyStore(session or _SequenceSession([]), _manifest(), **kwargs)


def test_constructor_requirements() -> None:
    with pytest.raises(ValidationError):
        _DummyStore(None, _manifest(), base_url="https://example.com")
    with pytest.raises(ValidationError):
        _DummyStore(_SequenceSession([]), _manifest(), base_url=None)
    store = _DummyStore(None, _manifest(requires_base_url=False))
    assert store.info.requires_base_url is False


def test_manifest_options_shape_the_store() -> None:
    manifest = StoreManifest(
        id="keyed",
        name="Keyed",
        requires_base_url=True,
        requires_api_key=True,
        default_api_uri="api/v1",
    )
    with pytest.raises(ValidationError, match="api_key"):
        _DummyStore(_SequenceSession([]), manifest, base_url="https://example.com")
    store = _DummyStore(
        _SequenceSession([]), manifest, base_url="https://example.com", api_key="k"
    )
    assert store._build_url("rows") == "https://example.com/api/v1/rows"


def test_build_url_validation() -> None:
    store = _store(api_uri="/rest/v1/")
    assert store._build_url("/path") == "https://example.com/rest/v1/path"
    assert store._build_url("path") == "https://example.com/rest/v1/path"
    with pytest.raises(ValidationError):
        store._build_url("")
    with pytest.raises(ValidationError):
        store._build_url("https://example.com/absolute")


def test_build_url_requires_base_url() -> None:
    store = _DummyStore(None, _manifest(requires_base_url=False))
    with pytest.raises(ValidationError):
        store._build_url("path")


def test_normalize_inputs() -> None:
    store = _store()
    assert store._normalize_api_uri(None) == ""
    assert store._normalize_api_uri(" /api/v1/ ") == "/api/v1"
    assert store._normalize_base_url(" https://example.com/ ") == "https://example.com"
    with pytest.raises(ValidationError):
        store._normalize_api_uri(123)  # type: ignore[arg-type]
    with pytest.raises(ValidationError):
        store._normalize_base_url("  ")


def test_validate_window_and_records() -> None:
    store = _store()
    with pytest.raises(ValidationError):
        store._validate_window(DateKey(2025, 3, 2), DateKey(2025, 3, 1))
    with pytest.raises(ValidationError):
        store._validate_records([{"date": "2025-03-01"}])  # type: ignore[list-item]
    with pytest.raises(ValidationError):
        store._require_entity_id(" ")


def test_map_records() -> None:
    store = _store()
    records = store._map_records("5", [{"date": "2025-03-01", "price": 10}, "skip"])
    assert records == [SyncRecord("5", DateKey(2025, 3, 1), 10)]
    assert store._map_records("5", None) == []
    with pytest.raises(StoreError):
        store._map_records("5", {"date": "2025-03-01"})
    with pytest.raises(StoreError):
        store._map_records("5", [{"date": "2025-03-01", "price": -1}])


@pytest.mark.asyncio
async def test_replace_all_deletes_then_inserts() -> None:
    store = _store()
    await store.replace_all("5", [SyncRecord("5", DateKey(2025, 3, 1), 10)])
    await store.replace_all("5", [])
    assert store.operations == ["delete:5", "insert:1", "delete:5"]
    with pytest.raises(ValidationError):
        await store.replace_all("5", [SyncRecord("6", DateKey(2025, 3, 1), 10)])


@pytest.mark.asyncio
async def test_request_json_retries_get() -> None:
    session = _SequenceSession(
        [
            aiohttp.ClientError("boom"),
            _FakeResponse(json_data=[{"ok": True}]),
        ]
    )
    store = _store(session, retry_count=1)
    result = await store._request_json("GET", "/path")
    assert result == [{"ok": True}]
    assert session.calls == 2


@pytest.mark.asyncio
async def test_request_no_retry_on_delete() -> None:
    session = _SequenceSession([aiohttp.ClientError("boom")])
    store = _store(session, retry_count=2)
    with pytest.raises(NetworkError):
        await store._request_text("DELETE", "/path")
    assert session.calls == 1


@pytest.mark.asyncio
async def test_request_timeout_is_network_error() -> None:
    session = _SequenceSession([TimeoutError()])
    store = _store(session)
    with pytest.raises(NetworkError):
        await store._request_json("GET", "/path")


@pytest.mark.asyncio
async def test_request_json_invalid_response() -> None:
    session = _SequenceSession([_FakeResponse(json_error=ValueError("bad"))])
    store = _store(session)
    with pytest.raises(StoreError):
        await store._request_json("GET", "/path")


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 403])
async def test_request_text_auth_error(status: int) -> None:
    session = _SequenceSession([_FakeResponse(status=status)])
    store = _store(session)
    with pytest.raises(AuthError):
        await store._request_text("GET", "/path")


@pytest.mark.asyncio
async def test_request_text_store_error() -> None:
    session = _SequenceSession([_FakeResponse(status=500)])
    store = _store(session)
    with pytest.raises(StoreError, match="500"):
        await store._request_text("GET", "/path")


@pytest.mark.asyncio
async def test_request_text_success() -> None:
    session = _SequenceSession([_FakeResponse(text_data="ok")])
    store = _store(session)
    assert await store._request_text("GET", "/path") == "ok"
