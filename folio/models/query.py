"""
Folio Query Builder — chainable, mutable, single-use document query.

A Query is bound to one collection handle and one model class. Chain
methods mutate and return the same Query; exactly one async terminal
method resolves it.

Usage:
    posts = await Post.where("status", "published").sort("-created_at").limit(10).find()
    adults = await User.where("age").gte(18).lt(65).count()
    post = await Post.populate("author", User).find_by_id(post_id)
    drafts = await Post.where({"status": "draft"})
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type, TYPE_CHECKING

from ..faults.domains import QueryFault
from .references import resolve_references

if TYPE_CHECKING:
    from ..db.backends.base import Collection
    from .base import Model

logger = logging.getLogger("folio.models.query")

__all__ = ["Query"]

_MISSING = object()

_DIRECTIONS = {
    1: 1,
    -1: -1,
    "asc": 1,
    "ascending": 1,
    "desc": -1,
    "descending": -1,
}


def _is_operator_mapping(value: Any) -> bool:
    return (
        isinstance(value, Mapping)
        and bool(value)
        and all(isinstance(k, str) and k.startswith("$") for k in value)
    )


class Query:
    """
    Folio Query — chainable, single-use query builder.

    Chain methods (return self):
        where(key, value) / where(mapping) / where(key)
        limit(n), skip(n), sort(key, direction) / sort(mapping)
        exists(key, exists=True)
        lt, lte, gt, gte, ne, in_, nin  -> (key, value) or (value) after where(key)
        and_, or_, nor                  -> (*clauses) of mappings or Queries
        populate(key, model) / populate(mapping)

    Terminal methods (async, one per Query):
        find(query=None)         -> List[Model]
        find_one(query=None)     -> Optional[Model]
        find_by_id(id)           -> Optional[Model]
        all()                    -> List[Model]
        count(query=None)        -> int
        remove(query=None)       -> raw storage result

    ``await query`` is the same as ``await query.find()``.
    """

    __slots__ = (
        "collection",
        "model",
        "criteria",
        "modifiers",
        "_last_key",
        "_resolved",
    )

    def __init__(self, collection: Collection, model: Type[Model]):
        self.collection = collection
        self.model = model
        self.criteria: Dict[str, Any] = {}
        self.modifiers: Dict[str, Any] = {}
        self._last_key: Optional[str] = None
        self._resolved: Optional[str] = None

    # ── Chain methods ────────────────────────────────────────────────

    def where(self, key: Any = None, value: Any = _MISSING, **fields: Any) -> Query:
        """
        Add criteria.

        Usage:
            .where({"status": "draft", "views": {"$gt": 10}})
            .where("status", "draft")
            .where("views").gt(10)
            .where(status="draft")
        """
        if isinstance(key, Mapping):
            for k, v in key.items():
                self._set(k, v)
        elif key is not None and value is _MISSING:
            self._last_key = key
        elif key is not None:
            self._set(key, value)

        for k, v in fields.items():
            self._set(k, v)
        return self

    def limit(self, n: int) -> Query:
        self.modifiers["limit"] = self._count_arg("limit", n)
        return self

    def skip(self, n: int) -> Query:
        self.modifiers["skip"] = self._count_arg("skip", n)
        return self

    def sort(self, key: Any, direction: Any = None) -> Query:
        """
        Order results.

        Prefix a field with '-' for descending order when no direction
        is given. Later calls append lower-priority sort keys.

        Usage:
            .sort("created_at", -1)
            .sort("-created_at")
            .sort({"author": "asc", "created_at": "desc"})
        """
        if isinstance(key, Mapping):
            for k, d in key.items():
                self.sort(k, d)
            return self

        if direction is None:
            if key.startswith("-"):
                key, direction = key[1:], -1
            else:
                direction = 1

        normalized = _DIRECTIONS.get(
            direction.lower() if isinstance(direction, str) else direction
        )
        if normalized is None:
            raise QueryFault(
                model=self.model.__name__,
                operation="sort",
                reason=f"Unknown sort direction {direction!r} for '{key}'",
            )
        self.modifiers.setdefault("sort", {})[key] = normalized
        return self

    def exists(self, key: Any = None, exists: bool = True) -> Query:
        """
        Match documents where a field is present (or absent).

        Usage:
            .exists("published_at")
            .exists("deleted_at", False)
            .where("published_at").exists()
        """
        if not isinstance(key, str):
            if key is not None:
                exists = key
            key = self._selected("exists")
        self._set(key, {"$exists": bool(exists)})
        return self

    def lt(self, key: Any, value: Any = _MISSING) -> Query:
        return self._compare("$lt", key, value)

    def lte(self, key: Any, value: Any = _MISSING) -> Query:
        return self._compare("$lte", key, value)

    def gt(self, key: Any, value: Any = _MISSING) -> Query:
        return self._compare("$gt", key, value)

    def gte(self, key: Any, value: Any = _MISSING) -> Query:
        return self._compare("$gte", key, value)

    def ne(self, key: Any, value: Any = _MISSING) -> Query:
        return self._compare("$ne", key, value)

    def in_(self, key: Any, value: Any = _MISSING) -> Query:
        if value is _MISSING:
            return self._compare("$in", list(key))
        return self._compare("$in", key, list(value))

    def nin(self, key: Any, value: Any = _MISSING) -> Query:
        if value is _MISSING:
            return self._compare("$nin", list(key))
        return self._compare("$nin", key, list(value))

    def and_(self, *clauses: Any) -> Query:
        return self._combine("$and", clauses)

    def or_(self, *clauses: Any) -> Query:
        return self._combine("$or", clauses)

    def nor(self, *clauses: Any) -> Query:
        return self._combine("$nor", clauses)

    def populate(self, key: Any, model: Any = None) -> Query:
        """
        Hydrate reference fields of the results.

        ``model`` is a Model class or registered model name.

        Usage:
            .populate("author", User)
            .populate({"author": "User", "comments": Comment})
        """
        if isinstance(key, Mapping):
            for k, m in key.items():
                self.populate(k, m)
            return self
        if model is None:
            raise QueryFault(
                model=self.model.__name__,
                operation="populate",
                reason=f"No model given for populate field '{key}'",
            )
        self.modifiers.setdefault("populate", {})[key] = model
        return self

    # ── Terminal methods ─────────────────────────────────────────────

    async def find(self, query: Optional[Mapping[str, Any]] = None) -> List[Model]:
        """Execute and return all matching documents as model instances."""
        self._begin("find")
        if query:
            self.where(query)

        options = {
            k: v for k, v in self.modifiers.items() if k in ("limit", "skip", "sort")
        }
        logger.debug(
            f"find on '{self.collection.name}' criteria={self.criteria} options={options}"
        )
        docs = await self.collection.find(self.criteria, options)

        populate = self.modifiers.get("populate") or {}
        models = [self.model._hydrate(doc, populate) for doc in docs]
        if populate and models:
            await resolve_references(models, populate)
        return models

    async def all(self) -> List[Model]:
        return await self.find()

    async def find_one(self, query: Optional[Mapping[str, Any]] = None) -> Optional[Model]:
        """Return the first matching document or None."""
        models = await self.find(query)
        return models[0] if models else None

    async def find_by_id(self, id: Any) -> Optional[Model]:
        return await self.find_one({"_id": self.collection.id(id)})

    async def count(self, query: Optional[Mapping[str, Any]] = None) -> int:
        """Count matching documents; limit, skip, sort and populate are ignored."""
        self._begin("count")
        if query:
            self.where(query)
        logger.debug(f"count on '{self.collection.name}' criteria={self.criteria}")
        return int(await self.collection.count(self.criteria))

    async def remove(self, query: Optional[Mapping[str, Any]] = None) -> Any:
        """Remove every matching document and return the storage result."""
        self._begin("remove")
        if query:
            self.where(query)
        logger.debug(f"remove on '{self.collection.name}' criteria={self.criteria}")
        return await self.collection.remove(self.criteria)

    def __await__(self):
        return self.find().__await__()

    # ── Internals ────────────────────────────────────────────────────

    def _set(self, key: str, value: Any) -> None:
        existing = self.criteria.get(key, _MISSING)
        if _is_operator_mapping(existing) and _is_operator_mapping(value):
            merged = dict(existing)
            merged.update(value)
            self.criteria[key] = merged
        else:
            self.criteria[key] = value

    def _selected(self, operation: str) -> str:
        if self._last_key is None:
            raise QueryFault(
                model=self.model.__name__,
                operation=operation,
                reason="No field selected; call where(key) first or pass the key",
            )
        return self._last_key

    def _compare(self, op: str, key: Any, value: Any = _MISSING) -> Query:
        if value is _MISSING:
            key, value = self._selected(op), key
        self._set(key, {op: value})
        return self

    def _combine(self, op: str, clauses: Iterable[Any]) -> Query:
        clauses = list(clauses)
        if len(clauses) == 1 and isinstance(clauses[0], (list, tuple)):
            clauses = list(clauses[0])
        items = [c.criteria if isinstance(c, Query) else dict(c) for c in clauses]
        self.criteria.setdefault(op, []).extend(items)
        return self

    def _count_arg(self, operation: str, n: Any) -> int:
        if isinstance(n, bool) or not isinstance(n, int) or n < 0:
            raise QueryFault(
                model=self.model.__name__,
                operation=operation,
                reason=f"Expected a non-negative integer, got {n!r}",
            )
        return n

    def _begin(self, operation: str) -> None:
        if self._resolved is not None:
            raise QueryFault(
                model=self.model.__name__,
                operation=operation,
                reason=f"Query was already resolved by {self._resolved}()",
            )
        self._resolved = operation

    def __repr__(self) -> str:
        return f"<Query {self.model.__name__} {self.criteria} {self.modifiers}>"
