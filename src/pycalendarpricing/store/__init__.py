"""Remote price stores."""

from __future__ import annotations

from .base import BaseStore
from .loader import StoreManifest, get_manifest, list_stores

__all__ = ["BaseStore", "StoreManifest", "get_manifest", "list_stores"]
