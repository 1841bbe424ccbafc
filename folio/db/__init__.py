"""
Folio DB — store connections, collection handles and storage adapters.
"""

from .engine import (
    Connection,
    close,
    collection,
    connect,
    connect_from_config,
    disconnect,
    get_connection,
    reset,
    set_connection,
)
from .backends import (
    Collection,
    MemoryAdapter,
    MongoAdapter,
    StoreAdapter,
)

__all__ = [
    "Connection",
    "close",
    "collection",
    "connect",
    "connect_from_config",
    "disconnect",
    "get_connection",
    "reset",
    "set_connection",
    "Collection",
    "MemoryAdapter",
    "MongoAdapter",
    "StoreAdapter",
]
