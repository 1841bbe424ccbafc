"""
Folio DB Backend — MongoDB adapter via PyMongo's asyncio client.

Requires pymongo:
    pip install "folio[mongo]"
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Dict, List, Optional, Sequence
from urllib.parse import urlsplit, urlunsplit

from ...faults.domains import ConnectionFault, StorageFault
from .base import Collection, StoreAdapter

logger = logging.getLogger("folio.db.backends.mongo")

__all__ = ["MongoAdapter", "MongoCollection", "merge_urls"]

# Try importing the async MongoDB driver
try:
    from bson import ObjectId
    from pymongo import AsyncMongoClient
    from pymongo.errors import ConnectionFailure, PyMongoError
    _HAS_PYMONGO = True
except ImportError:
    ObjectId = None  # type: ignore
    AsyncMongoClient = None  # type: ignore
    ConnectionFailure = PyMongoError = None  # type: ignore
    _HAS_PYMONGO = False


def merge_urls(urls: Sequence[str]) -> str:
    """
    Merge several MongoDB URLs into one seed-list URL.

    Credentials, database path and query string come from the first URL;
    hosts are collected from all of them in order.
    """
    if len(urls) == 1:
        return urls[0]

    first = urlsplit(urls[0])
    hosts: List[str] = []
    for url in urls:
        netloc = urlsplit(url).netloc
        netloc = netloc.rsplit("@", 1)[-1]
        for host in netloc.split(","):
            if host and host not in hosts:
                hosts.append(host)

    userinfo = first.netloc.rsplit("@", 1)[0] + "@" if "@" in first.netloc else ""
    return urlunsplit((first.scheme, userinfo + ",".join(hosts), first.path, first.query, ""))


def _mask_url(url: str) -> str:
    parts = urlsplit(url)
    if "@" not in parts.netloc:
        return url
    hosts = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit((parts.scheme, f"***@{hosts}", parts.path, parts.query, ""))


class MongoCollection(Collection):
    """Collection handle over a PyMongo ``AsyncCollection``."""

    def __init__(self, name: str, collection: Any):
        super().__init__(name)
        self._collection = collection

    async def _call(self, operation: str, awaitable: Awaitable[Any]) -> Any:
        try:
            return await awaitable
        except PyMongoError as exc:
            raise StorageFault(
                self.name,
                operation,
                str(exc),
                retryable=isinstance(exc, ConnectionFailure),
            ) from exc

    async def insert(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        stored = dict(doc)
        result = await self._call("insert", self._collection.insert_one(stored))
        stored["_id"] = result.inserted_id
        return stored

    async def update_by_id(self, id: Any, doc: Dict[str, Any]) -> Dict[str, int]:
        replacement = {k: v for k, v in doc.items() if k != "_id"}
        result = await self._call(
            "update",
            self._collection.replace_one({"_id": self.id(id)}, replacement),
        )
        return {"matched_count": result.matched_count, "modified_count": result.modified_count}

    async def remove(self, criteria: Dict[str, Any]) -> Dict[str, int]:
        result = await self._call("remove", self._collection.delete_many(criteria))
        return {"deleted_count": result.deleted_count}

    async def find(
        self,
        criteria: Dict[str, Any],
        options: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        options = options or {}
        kwargs: Dict[str, Any] = {}
        if options.get("limit"):
            kwargs["limit"] = options["limit"]
        if options.get("skip"):
            kwargs["skip"] = options["skip"]
        if options.get("sort"):
            kwargs["sort"] = list(options["sort"].items())

        try:
            cursor = self._collection.find(criteria, **kwargs)
        except PyMongoError as exc:
            raise StorageFault(self.name, "find", str(exc)) from exc
        return await self._call("find", cursor.to_list(None))

    async def count(self, criteria: Dict[str, Any]) -> int:
        return await self._call("count", self._collection.count_documents(criteria))

    async def index(self, fields: Any, **options: Any) -> str:
        if isinstance(fields, dict):
            fields = list(fields.items())
        return await self._call("index", self._collection.create_index(fields, **options))

    async def indexes(self) -> List[Dict[str, Any]]:
        info = await self._call("indexes", self._collection.index_information())
        return [
            {"name": name, "key": list(spec.get("key", [])), "unique": bool(spec.get("unique"))}
            for name, spec in info.items()
        ]

    def id(self, value: Any = None) -> Any:
        if value is None:
            return ObjectId()
        if isinstance(value, str) and ObjectId.is_valid(value):
            return ObjectId(value)
        return value


class MongoAdapter(StoreAdapter):
    """
    MongoDB adapter using ``pymongo.AsyncMongoClient``.

    The client connects lazily, so ``connect`` performs no I/O; the first
    storage call opens the connection pool.

    Options:
        database: Database name when the URL carries none (default "folio").
        Any other option is passed to ``AsyncMongoClient``.
    """

    name = "mongodb"

    def __init__(self) -> None:
        self._client: Any = None
        self._db: Any = None

    def connect(self, urls: Sequence[str], **options: Any) -> None:
        if self._client is not None:
            return

        if not _HAS_PYMONGO:
            raise ImportError(
                "pymongo is required for MongoDB support.\n"
                "Install: pip install 'folio[mongo]'"
            )

        url = merge_urls(urls)
        database = options.pop("database", None) or "folio"
        try:
            self._client = AsyncMongoClient(url, **options)
            self._db = self._client.get_default_database(default=database)
        except PyMongoError as exc:
            raise ConnectionFault(url=_mask_url(url), reason=str(exc)) from exc
        logger.info(f"MongoDB client ready: {_mask_url(url)} (database '{self._db.name}')")

    async def close(self) -> None:
        if self._client is None:
            return
        await self._client.close()
        self._client = None
        self._db = None
        logger.info("MongoDB client closed")

    def collection(self, name: str) -> MongoCollection:
        if self._db is None:
            raise StorageFault(name, "collection", "adapter is not connected", retryable=False)
        return MongoCollection(name, self._db[name])

    @property
    def is_connected(self) -> bool:
        return self._client is not None
