"""
Store package — the RemoteStore interface and its implementations.
"""

from repackhub.store.base import Embed, Filter, Order, RemoteStore, Row
from repackhub.store.blob import BlobStorage, SupabaseBlobStorage
from repackhub.store.postgrest import PostgrestStore
from repackhub.store.sql import SqlStore

__all__ = [
    "BlobStorage",
    "Embed",
    "Filter",
    "Order",
    "PostgrestStore",
    "RemoteStore",
    "Row",
    "SqlStore",
    "SupabaseBlobStorage",
]
