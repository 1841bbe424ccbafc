"""
Folio DB Backends Package — pluggable storage adapters.

Provides a common adapter interface and implementations for:
- memory:// (in-process, default for tests)
- mongodb:// (via pymongo's asyncio client)
"""

from .base import Collection, StoreAdapter
from .memory import MemoryAdapter, MemoryCollection
from .mongo import MongoAdapter, MongoCollection

__all__ = [
    "Collection",
    "StoreAdapter",
    "MemoryAdapter",
    "MemoryCollection",
    "MongoAdapter",
    "MongoCollection",
]
