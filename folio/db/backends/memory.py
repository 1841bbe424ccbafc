"""
Folio DB Backend — in-process memory store.

Useful for tests and prototyping. Documents live in module-level stores
keyed by URL, so every ``Connection`` to the same ``memory://name`` sees
the same data for the lifetime of the process.

Supports the Mongo-style filter subset the query builder emits:
equality (including list membership and dotted paths), ``$eq``, ``$ne``,
``$gt``, ``$gte``, ``$lt``, ``$lte``, ``$in``, ``$nin``, ``$exists``,
``$regex``/``$options``, ``$not``, ``$and``, ``$or`` and ``$nor``.
"""

from __future__ import annotations

import copy
import logging
import operator
import re
import uuid
from typing import Any, Callable, Dict, List, Optional, Sequence

from ...faults.domains import StorageFault
from .base import Collection, StoreAdapter

logger = logging.getLogger("folio.db.backends.memory")

__all__ = ["MemoryAdapter", "MemoryCollection", "matches", "drop_store"]

_MISSING = object()

_COMPARATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "$gt": operator.gt,
    "$gte": operator.ge,
    "$lt": operator.lt,
    "$lte": operator.le,
}

# url -> collection name -> _CollectionData
_STORES: Dict[str, Dict[str, "_CollectionData"]] = {}


class _CollectionData:
    __slots__ = ("docs", "indexes")

    def __init__(self) -> None:
        self.docs: Dict[Any, Dict[str, Any]] = {}
        self.indexes: List[Dict[str, Any]] = [{"name": "_id_", "key": [("_id", 1)], "unique": True}]


def drop_store(url: str) -> None:
    """Forget every collection stored under ``url``."""
    _STORES.pop(url, None)


# ── Matching ─────────────────────────────────────────────────────────────────


def _resolve(doc: Any, path: str) -> Any:
    current = doc
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return _MISSING
    return current


def _is_operator_mapping(value: Any) -> bool:
    return isinstance(value, dict) and bool(value) and all(
        isinstance(k, str) and k.startswith("$") for k in value
    )


def _equals(value: Any, expected: Any) -> bool:
    if value is _MISSING:
        return expected is None
    if value == expected:
        return True
    if isinstance(value, list) and not isinstance(expected, list):
        return expected in value
    return False


def _regex_matches(value: Any, pattern: Any, flags: str = "") -> bool:
    if not isinstance(pattern, re.Pattern):
        re_flags = 0
        if "i" in flags:
            re_flags |= re.IGNORECASE
        if "m" in flags:
            re_flags |= re.MULTILINE
        if "s" in flags:
            re_flags |= re.DOTALL
        pattern = re.compile(pattern, re_flags)
    candidates = value if isinstance(value, list) else [value]
    return any(isinstance(c, str) and pattern.search(c) is not None for c in candidates)


def _compare(value: Any, op: str, arg: Any) -> bool:
    if value is _MISSING or value is None:
        return False
    candidates = value if isinstance(value, list) else [value]
    compare = _COMPARATORS[op]
    for candidate in candidates:
        try:
            if compare(candidate, arg):
                return True
        except TypeError:
            continue
    return False


def _match_field(value: Any, condition: Any) -> bool:
    if isinstance(condition, re.Pattern):
        return _regex_matches(value, condition)
    if not _is_operator_mapping(condition):
        return _equals(value, condition)

    for op, arg in condition.items():
        if op == "$eq":
            ok = _equals(value, arg)
        elif op == "$ne":
            ok = not _equals(value, arg)
        elif op == "$exists":
            ok = (value is not _MISSING) == bool(arg)
        elif op == "$in":
            ok = any(_equals(value, a) for a in arg)
        elif op == "$nin":
            ok = not any(_equals(value, a) for a in arg)
        elif op in _COMPARATORS:
            ok = _compare(value, op, arg)
        elif op == "$regex":
            ok = _regex_matches(value, arg, condition.get("$options", ""))
        elif op == "$options":
            ok = True
        elif op == "$not":
            ok = not _match_field(value, arg)
        else:
            raise ValueError(f"Unsupported operator: {op}")
        if not ok:
            return False
    return True


def matches(doc: Dict[str, Any], criteria: Dict[str, Any]) -> bool:
    """Return True when ``doc`` satisfies the Mongo-style ``criteria``."""
    for key, condition in criteria.items():
        if key == "$and":
            if not all(matches(doc, c) for c in condition):
                return False
        elif key == "$or":
            if not any(matches(doc, c) for c in condition):
                return False
        elif key == "$nor":
            if any(matches(doc, c) for c in condition):
                return False
        elif key.startswith("$"):
            raise ValueError(f"Unsupported top-level operator: {key}")
        elif not _match_field(_resolve(doc, key), condition):
            return False
    return True


def _sort_key(value: Any) -> tuple:
    # Missing and None order before everything else, as in MongoDB.
    if value is _MISSING or value is None:
        return (0,)
    return (1, value)


def _apply_options(docs: List[Dict[str, Any]], options: Dict[str, Any]) -> List[Dict[str, Any]]:
    sort = options.get("sort") or {}
    for field, direction in reversed(list(sort.items())):
        docs.sort(key=lambda d: _sort_key(_resolve(d, field)), reverse=direction < 0)

    skip = options.get("skip") or 0
    if skip:
        docs = docs[skip:]

    limit = options.get("limit")
    if limit:
        docs = docs[:limit]
    return docs


# ── Collection ───────────────────────────────────────────────────────────────


class MemoryCollection(Collection):
    """Collection handle over an in-process document dictionary."""

    def __init__(self, name: str, data: _CollectionData):
        super().__init__(name)
        self._data = data

    def _fail(self, operation: str, exc: Exception) -> StorageFault:
        return StorageFault(self.name, operation, str(exc), retryable=False)

    def _check_unique(self, doc: Dict[str, Any], operation: str) -> None:
        for index in self._data.indexes:
            if not index.get("unique") or index["name"] == "_id_":
                continue
            fields = [f for f, _ in index["key"]]
            key = tuple(_resolve(doc, f) for f in fields)
            for other_id, other in self._data.docs.items():
                if other_id == doc.get("_id"):
                    continue
                if tuple(_resolve(other, f) for f in fields) == key:
                    raise StorageFault(
                        self.name,
                        operation,
                        f"duplicate key for index '{index['name']}': {key!r}",
                        retryable=False,
                    )

    async def insert(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        stored = copy.deepcopy(doc)
        if stored.get("_id") is None:
            stored["_id"] = self.id()
        if stored["_id"] in self._data.docs:
            raise StorageFault(self.name, "insert", f"duplicate _id {stored['_id']!r}", retryable=False)
        self._check_unique(stored, "insert")
        self._data.docs[stored["_id"]] = stored
        logger.debug(f"Inserted {stored['_id']!r} into '{self.name}'")
        return copy.deepcopy(stored)

    async def update_by_id(self, id: Any, doc: Dict[str, Any]) -> Dict[str, int]:
        if id not in self._data.docs:
            return {"matched_count": 0, "modified_count": 0}
        stored = copy.deepcopy(doc)
        stored["_id"] = id
        self._check_unique(stored, "update")
        self._data.docs[id] = stored
        return {"matched_count": 1, "modified_count": 1}

    async def remove(self, criteria: Dict[str, Any]) -> Dict[str, int]:
        try:
            doomed = [k for k, d in self._data.docs.items() if matches(d, criteria)]
        except ValueError as exc:
            raise self._fail("remove", exc) from exc
        for key in doomed:
            del self._data.docs[key]
        return {"deleted_count": len(doomed)}

    async def find(
        self,
        criteria: Dict[str, Any],
        options: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        try:
            docs = [d for d in self._data.docs.values() if matches(d, criteria)]
            docs = _apply_options(docs, options or {})
        except (ValueError, TypeError) as exc:
            raise self._fail("find", exc) from exc
        return copy.deepcopy(docs)

    async def count(self, criteria: Dict[str, Any]) -> int:
        try:
            return sum(1 for d in self._data.docs.values() if matches(d, criteria))
        except ValueError as exc:
            raise self._fail("count", exc) from exc

    async def index(self, fields: Any, **options: Any) -> str:
        if isinstance(fields, str):
            key = [(fields, 1)]
        elif isinstance(fields, dict):
            key = list(fields.items())
        else:
            key = [(f, 1) if isinstance(f, str) else tuple(f) for f in fields]
        name = options.get("name") or "_".join(f"{f}_{d}" for f, d in key)
        if not any(i["name"] == name for i in self._data.indexes):
            self._data.indexes.append({"name": name, "key": key, "unique": bool(options.get("unique"))})
        return name

    async def indexes(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._data.indexes)

    def id(self, value: Any = None) -> str:
        if value is None:
            return uuid.uuid4().hex[:24]
        return str(value)


# ── Adapter ──────────────────────────────────────────────────────────────────


class MemoryAdapter(StoreAdapter):
    """
    In-memory adapter.

    Example:
        adapter = MemoryAdapter()
        adapter.connect(["memory://blog"])
        posts = adapter.collection("posts")
    """

    name = "memory"

    def __init__(self) -> None:
        self._url: Optional[str] = None
        self._connected = False

    def connect(self, urls: Sequence[str], **options: Any) -> None:
        self._url = urls[0]
        _STORES.setdefault(self._url, {})
        self._connected = True
        logger.info(f"Memory store ready: {self._url}")

    async def close(self) -> None:
        self._connected = False

    def collection(self, name: str) -> MemoryCollection:
        if self._url is None:
            raise StorageFault(name, "collection", "adapter is not connected", retryable=False)
        store = _STORES.setdefault(self._url, {})
        data = store.setdefault(name, _CollectionData())
        return MemoryCollection(name, data)

    @property
    def is_connected(self) -> bool:
        return self._connected
