"""Supabase (PostgREST) store."""

from .api import Store

__all__ = ["Store"]
