"""Client facade that opens price stores by id."""

from __future__ import annotations

import asyncio
import importlib
import logging

import aiohttp

from .exceptions import ConfigError
from .models import StoreInfo
from .store.base import BaseStore
from .store.loader import MEMORY_MANIFEST, StoreManifest, get_manifest, list_stores
from .store.memory import Store as MemoryStore

_DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=30)
_LOGGER = logging.getLogger(__name__)


def _import_store_class(manifest: StoreManifest) -> type[BaseStore]:
    try:
        module = importlib.import_module(f"pycalendarpricing.store.{manifest.id}")
    except ModuleNotFoundError as exc:
        raise ConfigError(f"Store {manifest.id!r} could not be imported.") from exc
    store_cls = getattr(module, "Store", None)
    if not isinstance(store_cls, type) or not issubclass(store_cls, BaseStore):
        raise ConfigError(f"Store {manifest.id!r} must export a BaseStore subclass.")
    return store_cls


def _resolve_remote(store_id: str) -> tuple[StoreManifest, type[BaseStore]]:
    manifest = get_manifest(store_id)
    return manifest, _import_store_class(manifest)


class Client:
    """Opens stores and owns the HTTP session shared by remote ones.

    Connection options given here are defaults; ``get_store`` arguments win.
    The memory store is created directly and never opens a session.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        *,
        base_url: str | None = None,
        api_uri: str | None = None,
        api_key: str | None = None,
        timeout: aiohttp.ClientTimeout | None = None,
        retry_count: int = 0,
    ) -> None:
        self._session = session
        self._owns_session = session is None
        self._defaults = {"base_url": base_url, "api_uri": api_uri, "api_key": api_key}
        self._timeout = timeout or _DEFAULT_TIMEOUT
        self._retry_count = max(0, retry_count)

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def list_stores(self) -> list[StoreInfo]:
        return await asyncio.to_thread(list_stores)

    async def get_store(
        self,
        store_id: str,
        *,
        base_url: str | None = None,
        api_uri: str | None = None,
        api_key: str | None = None,
    ) -> BaseStore:
        """Return a ready store.

        Raises ``ConfigError`` for an unknown store and for missing options
        the store's manifest declares as required.
        """
        if not store_id:
            raise ConfigError("Store id is required.")
        if store_id == MEMORY_MANIFEST.id:
            return MemoryStore()
        manifest, store_cls = await asyncio.to_thread(_resolve_remote, store_id)
        options = self._options(base_url=base_url, api_uri=api_uri, api_key=api_key)
        missing = manifest.missing_options(
            base_url=options["base_url"],
            api_key=options["api_key"],
        )
        if missing:
            raise ConfigError(f"Store {store_id!r} requires: {', '.join(missing)}.")
        _LOGGER.debug("Opening store %s", store_id)
        session = self._ensure_session() if manifest.requires_base_url else self._session
        return store_cls(
            session,
            manifest,
            **options,
            timeout=self._timeout,
            retry_count=self._retry_count,
        )

    def _options(self, **overrides: str | None) -> dict[str, str | None]:
        return {
            key: value if value is not None else self._defaults[key]
            for key, value in overrides.items()
        }

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session
