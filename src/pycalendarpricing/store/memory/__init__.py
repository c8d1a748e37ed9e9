"""In-process store."""

from .api import Store

__all__ = ["Store"]
