"""
Folio Connection Engine — store connections and collection-handle cache.

Provides:
- Connection: a handle over one storage adapter (memory or MongoDB)
- connect() / disconnect(): process-level connection management; the first
  successful connect becomes the default used by models without an explicit
  ``connection`` override
- collection(): memoized collection resolution keyed by (URL, name)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from ..faults.domains import ConnectionFault
from .backends.base import Collection, StoreAdapter

if TYPE_CHECKING:
    from ..config import FolioConfig

logger = logging.getLogger("folio.db")

__all__ = [
    "Connection",
    "connect",
    "connect_from_config",
    "disconnect",
    "close",
    "collection",
    "get_connection",
    "set_connection",
    "reset",
]


def _normalize_url(url: str) -> str:
    """Rewrite the legacy ``mongo://`` scheme to ``mongodb://``."""
    if url.startswith("mongo://"):
        return "mongodb://" + url[len("mongo://"):]
    return url


def _create_adapter(url: str) -> StoreAdapter:
    """Factory — instantiate the adapter for the URL scheme."""
    if url.startswith("memory://"):
        from .backends.memory import MemoryAdapter
        return MemoryAdapter()
    elif url.startswith("mongodb://") or url.startswith("mongodb+srv://"):
        from .backends.mongo import MongoAdapter
        return MongoAdapter()
    else:
        raise ConnectionFault(url=url, reason=f"Unsupported store URL scheme: {url}")


class Connection:
    """
    Connection to a document store.

    ``url`` is the canonical (first) URL and is the cache key used by
    ``collection()``.

    Usage:
        db = Connection("memory://blog")
        posts = db.collection("posts")
        await db.close()

        db = Connection("mongodb://localhost:27017/blog")
    """

    __slots__ = ("_urls", "_adapter", "_options")

    def __init__(self, *urls: str, **options: Any):
        if not urls:
            raise ConnectionFault(url="<none>", reason="At least one store URL is required")
        self._urls: List[str] = [_normalize_url(u) for u in urls]
        self._options = options
        self._adapter: StoreAdapter = _create_adapter(self._urls[0])
        self._adapter.connect(self._urls, **dict(options))

    @property
    def url(self) -> str:
        return self._urls[0]

    @property
    def urls(self) -> List[str]:
        return list(self._urls)

    @property
    def adapter(self) -> StoreAdapter:
        return self._adapter

    @property
    def is_connected(self) -> bool:
        return self._adapter.is_connected

    def collection(self, name: str) -> Collection:
        """Resolve a (memoized) collection handle on this connection."""
        return collection(self, name)

    async def close(self) -> None:
        """Close the adapter and drop handles cached for this URL."""
        await self._adapter.close()
        _collections.pop(self.url, None)
        logger.info(f"Store connection closed ({self.url})")

    def __repr__(self) -> str:
        return f"<Connection {self.url!r} adapter={self._adapter.name}>"


# ── Process-level state ──────────────────────────────────────────────────────

_default_connection: Optional[Connection] = None
_collections: Dict[str, Dict[str, Collection]] = {}


def connect(*urls: str, **options: Any) -> Connection:
    """
    Connect to a store and return the connection.

    The first successful connect becomes the default connection. Later
    calls leave it in place until ``disconnect()`` clears it.

    Args:
        *urls: One or more store URLs (several MongoDB URLs form a seed list)
        **options: Adapter-specific options
    """
    global _default_connection
    db = Connection(*urls, **options)
    if _default_connection is None:
        _default_connection = db
        logger.info(f"Default store connection set ({db.url})")
    return db


def connect_from_config(config: Optional[FolioConfig] = None) -> Connection:
    """Connect using ``FolioConfig`` (loaded from the environment if omitted)."""
    from ..config import FolioConfig

    config = config or FolioConfig.load()
    return connect(*config.urls, **config.options)


async def disconnect() -> None:
    """
    Close the default connection and clear it.

    The next ``connect()`` becomes the new default.
    """
    global _default_connection
    db, _default_connection = _default_connection, None
    if db is not None:
        await db.close()


async def close() -> None:
    """Alias for ``disconnect()``."""
    await disconnect()


def get_connection() -> Connection:
    """
    Return the default connection.

    Raises:
        ConnectionFault: If no connection has been made yet.
    """
    if _default_connection is None:
        raise ConnectionFault(
            url="<not configured>",
            reason="No store connection. Call folio.connect() first.",
        )
    return _default_connection


def set_connection(db: Optional[Connection]) -> None:
    """Replace (or clear, with ``None``) the default connection."""
    global _default_connection
    _default_connection = db


def collection(db: Connection, name: str) -> Collection:
    """
    Resolve a collection handle.

    Handles are cached for the process lifetime by (connection URL,
    collection name); repeated resolution returns the identical handle.
    """
    handles = _collections.setdefault(db.url, {})
    handle = handles.get(name)
    if handle is None:
        handle = handles[name] = db.adapter.collection(name)
        logger.debug(f"Resolved collection '{name}' on {db.url}")
    return handle


def cached_collections() -> List[Tuple[str, str]]:
    """List the (URL, name) pairs currently cached."""
    return [(url, name) for url, handles in _collections.items() for name in handles]


def reset() -> None:
    """Forget the default connection and every cached handle (for testing)."""
    global _default_connection
    _default_connection = None
    _collections.clear()
