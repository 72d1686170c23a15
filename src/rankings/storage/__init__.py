"""Persistence backends for entity rows and binary assets."""

from .base import ObjectStorage, RecordStore, Row, StorageEntry, StoreError
from .supabase import SupabaseClient, build_supabase_client

__all__ = [
    "ObjectStorage",
    "RecordStore",
    "Row",
    "StorageEntry",
    "StoreError",
    "SupabaseClient",
    "build_supabase_client",
]
