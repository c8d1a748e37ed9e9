"""Store manifests.

The in-memory store is built in and never touches the package data. Remote
stores ship a ``manifest.json`` in their folder declaring the options they
need (``base_url``, ``api_key``) and the default API path on their host.
"""

from __future__ import annotations

import functools
import json
from collections.abc import Iterator
from dataclasses import dataclass
from importlib import resources
from importlib.metadata import PackageNotFoundError
from importlib.resources.abc import Traversable

from ..exceptions import ConfigError
from ..models import StoreInfo

MANIFEST_FILENAME = "manifest.json"
SCHEMA_FILENAME = "manifest.schema.json"

_REQUIRED_FIELDS: dict[str, type] = {"id": str, "name": str, "requires_base_url": bool}
_OPTIONAL_FIELDS: dict[str, type] = {"requires_api_key": bool, "default_api_uri": str}


@dataclass(frozen=True, slots=True)
class StoreManifest:
    id: str
    name: str
    requires_base_url: bool
    requires_api_key: bool = False
    default_api_uri: str | None = None

    def missing_options(self, *, base_url: str | None, api_key: str | None) -> list[str]:
        """Names of the connection options this store needs but did not get."""
        missing: list[str] = []
        if self.requires_base_url and not base_url:
            missing.append("base_url")
        if self.requires_api_key and not api_key:
            missing.append("api_key")
        return missing

    def to_info(self) -> StoreInfo:
        return StoreInfo(id=self.id, name=self.name, requires_base_url=self.requires_base_url)


MEMORY_MANIFEST = StoreManifest(id="memory", name="In-memory", requires_base_url=False)


def _store_root() -> Traversable:
    return resources.files("pycalendarpricing.store")


def load_manifest_schema() -> dict:
    return json.loads((_store_root() / SCHEMA_FILENAME).read_text(encoding="utf-8"))


def _build_manifest(data: dict, folder_name: str) -> StoreManifest:
    if not isinstance(data, dict):
        raise ConfigError(f"Manifest of store {folder_name} must be a JSON object.")
    missing = [key for key in _REQUIRED_FIELDS if key not in data]
    if missing:
        raise ConfigError(f"Manifest of store {folder_name} misses: {', '.join(missing)}.")
    unknown = sorted(set(data) - set(_REQUIRED_FIELDS) - set(_OPTIONAL_FIELDS))
    if unknown:
        raise ConfigError(
            f"Manifest of store {folder_name} has unknown keys: {', '.join(unknown)}."
        )
    for key, expected in {**_REQUIRED_FIELDS, **_OPTIONAL_FIELDS}.items():
        if key in data and not isinstance(data[key], expected):
            raise ConfigError(
                f"Manifest of store {folder_name}: {key} must be {expected.__name__}."
            )
    if data["id"] != folder_name:
        raise ConfigError(f"Manifest id {data['id']!r} does not match folder {folder_name!r}.")
    if data["id"] == MEMORY_MANIFEST.id:
        raise ConfigError("The memory store is built in and cannot be overridden.")
    if not data["name"]:
        raise ConfigError(f"Manifest of store {folder_name} needs a name.")
    if data.get("requires_api_key") and not data["requires_base_url"]:
        raise ConfigError(f"Store {folder_name} requires an api_key but no base_url.")
    return StoreManifest(**data)


def iter_manifest_files() -> Iterator[tuple[str, Traversable]]:
    for entry in _store_root().iterdir():
        if not entry.is_dir():
            continue
        manifest_path = entry / MANIFEST_FILENAME
        if manifest_path.is_file():
            yield entry.name, manifest_path


@functools.cache
def _remote_manifests() -> tuple[StoreManifest, ...]:
    manifests: list[StoreManifest] = []
    try:
        for folder_name, manifest_path in iter_manifest_files():
            try:
                data = json.loads(manifest_path.read_text(encoding="utf-8"))
            except json.JSONDecodeError as exc:
                raise ConfigError(f"Manifest of store {folder_name} is not valid JSON.") from exc
            manifests.append(_build_manifest(data, folder_name))
    except (ModuleNotFoundError, PackageNotFoundError) as exc:
        raise ConfigError("Store package was not found.") from exc
    return tuple(sorted(manifests, key=lambda manifest: manifest.id))


def clear_manifest_cache() -> None:
    """Forget scanned remote manifests (used in tests)."""
    _remote_manifests.cache_clear()


def load_manifests() -> list[StoreManifest]:
    """The built-in memory store first, then remote stores by id."""
    return [MEMORY_MANIFEST, *_remote_manifests()]


def list_stores() -> list[StoreInfo]:
    return [manifest.to_info() for manifest in load_manifests()]


def get_manifest(store_id: str) -> StoreManifest:
    if store_id == MEMORY_MANIFEST.id:
        return MEMORY_MANIFEST
    for manifest in _remote_manifests():
        if manifest.id == store_id:
            return manifest
    raise ConfigError(f"Store {store_id!r} not found.")
