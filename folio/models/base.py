"""
Folio Model Base — document models with lifecycle hooks.

Usage:
    from folio import Model

    class Post(Model):
        collection = "posts"
        defaults = {"status": "draft", "tags": []}
        references = {"author": "User"}

        def configure(self):
            self.before("save", "validate")
            self.around("create", self.timed)

        async def validate(self):
            if not self.get("title"):
                raise ValueError("title is required")

    post = Post({"title": "Hello"})
    await post.save()
    drafts = await Post.where("status", "draft").sort("-created_at").find()
"""

from __future__ import annotations

import logging
import time
import types
from typing import Any, Callable, ClassVar, Dict, List, Mapping, Optional, TYPE_CHECKING

from ..db import engine
from .attributes import AttributeStore
from .hooks import HookRegistry
from .metaclass import ModelMeta
from .query import Query
from .references import flatten_references

if TYPE_CHECKING:
    from ..db.backends.base import Collection
    from ..db.engine import Connection

logger = logging.getLogger("folio.models")

__all__ = ["Model"]


def _now() -> int:
    """Current time in whole seconds."""
    return round(time.time())


class _hybridmethod:
    """
    Dispatch to ``fclass`` when accessed on the class and to the decorated
    function when accessed on an instance.
    """

    def __init__(self, finstance: Callable):
        self.finstance = finstance
        self.fclass: Optional[Callable] = None
        self.__doc__ = finstance.__doc__

    def classmethod(self, fclass: Callable) -> _hybridmethod:
        self.fclass = fclass
        return self

    def __get__(self, instance: Any, owner: type) -> Callable:
        if instance is None:
            return types.MethodType(self.fclass, owner)
        return types.MethodType(self.finstance, instance)


class Model(AttributeStore, metaclass=ModelMeta):
    """
    Base class for Folio document models.

    Class attributes:
        collection / collection_name: collection name (default: lowercased class name)
        defaults: values applied to unset attributes on save (deep-copied)
        references: populate fields holding references to other models
        connection: Connection override (default: the process default)
    """

    collection_name: ClassVar[str] = ""
    defaults: ClassVar[Dict[str, Any]] = {}
    references: ClassVar[Dict[str, Any]] = {}
    connection: ClassVar[Optional[Connection]] = None

    def __init__(
        self,
        attributes: Optional[Mapping[str, Any]] = None,
        options: Optional[Mapping[str, Any]] = None,
        **kwargs: Any,
    ):
        super().__init__(attributes, **kwargs)
        self.options: Dict[str, Any] = dict(options or {})
        self.options["populate"] = {
            **self.references,
            **(self.options.get("populate") or {}),
        }
        self.hooks = HookRegistry(self)
        self.configure()

    def configure(self) -> None:
        """Register hooks here; runs once per instance at construction."""

    # ── Hooks ────────────────────────────────────────────────────────

    def hook(self, when: Any, action: Optional[str] = None, method: Any = None) -> None:
        self.hooks.hook(when, action, method)

    def before(self, action: str, method: Any) -> None:
        self.hooks.before(action, method)

    def after(self, action: str, method: Any) -> None:
        self.hooks.after(action, method)

    def around(self, action: str, method: Any) -> None:
        self.hooks.around(action, method)

    async def run_hooks(self, when: str, action: str) -> None:
        await self.hooks.run(when, action)

    # ── Lifecycle ────────────────────────────────────────────────────

    async def save(self) -> Model:
        """
        Persist the instance.

        Updates when the instance already has an ``_id``; creates otherwise.
        Defaults are applied and references flattened before ``before:save``.
        """
        is_update = self.get("_id") is not None

        self.set_defaults()
        flatten_references(self)

        try:
            await self.run_hooks("before", "save")
            result = await (self.update() if is_update else self.create())
            await self.run_hooks("after", "save")
        finally:
            await self.hooks.abort("save")

        return result

    async def create(self) -> Model:
        """Insert the instance and adopt the ``_id`` storage assigned."""
        collection = self.collection()

        timestamp = _now()
        self.set("created_at", timestamp)
        self.set("updated_at", timestamp)

        try:
            await self.run_hooks("before", "create")

            logger.debug(f"{type(self).__name__}: insert into '{collection.name}'")
            doc = await collection.insert(self.attributes)
            self.set("_id", doc["_id"])

            await self.run_hooks("after", "create")
        finally:
            await self.hooks.abort("create")

        return self

    async def update(self) -> Model:
        """Replace the stored document with the current attributes."""
        collection = self.collection()

        self.set("updated_at", _now())

        try:
            await self.run_hooks("before", "update")

            logger.debug(f"{type(self).__name__}: update {self.get('_id')!r} in '{collection.name}'")
            await collection.update_by_id(self.get("_id"), self.attributes)

            await self.run_hooks("after", "update")
        finally:
            await self.hooks.abort("update")

        return self

    @_hybridmethod
    async def remove(self) -> Model:
        """
        Remove this document.

        On the class, ``Model.remove(query=None)`` removes every matching
        document and returns the storage result.
        """
        collection = self.collection()

        try:
            await self.run_hooks("before", "remove")

            logger.debug(f"{type(self).__name__}: remove {self.get('_id')!r} from '{collection.name}'")
            await collection.remove({"_id": self.get("_id")})

            await self.run_hooks("after", "remove")
        finally:
            await self.hooks.abort("remove")

        return self

    @remove.classmethod
    async def remove(cls, query: Optional[Mapping[str, Any]] = None) -> Any:
        return await cls.query().remove(query)

    # ── Storage ──────────────────────────────────────────────────────

    @classmethod
    def _get_connection(cls) -> Connection:
        return cls.connection or engine.get_connection()

    @classmethod
    def collection(cls) -> Collection:
        """Resolve this model's (memoized) collection handle."""
        return engine.collection(cls._get_connection(), cls.collection_name)

    @classmethod
    def _hydrate(cls, doc: Dict[str, Any], populate: Optional[Mapping[str, Any]] = None) -> Model:
        """Wrap a stored document without recording changes."""
        instance = cls(options={"populate": dict(populate or {})})
        instance.attributes = doc
        return instance

    # ── Query bridges ────────────────────────────────────────────────

    @classmethod
    def query(cls) -> Query:
        """
        Start a query chain.

        Usage:
            posts = await Post.query().where("status", "draft").find()
        """
        return Query(cls.collection(), cls)

    @classmethod
    def where(cls, *args: Any, **kwargs: Any) -> Query:
        return cls.query().where(*args, **kwargs)

    @classmethod
    def limit(cls, n: int) -> Query:
        return cls.query().limit(n)

    @classmethod
    def skip(cls, n: int) -> Query:
        return cls.query().skip(n)

    @classmethod
    def sort(cls, *args: Any) -> Query:
        return cls.query().sort(*args)

    @classmethod
    def exists(cls, *args: Any) -> Query:
        return cls.query().exists(*args)

    @classmethod
    def lt(cls, key: str, value: Any) -> Query:
        return cls.query().lt(key, value)

    @classmethod
    def lte(cls, key: str, value: Any) -> Query:
        return cls.query().lte(key, value)

    @classmethod
    def gt(cls, key: str, value: Any) -> Query:
        return cls.query().gt(key, value)

    @classmethod
    def gte(cls, key: str, value: Any) -> Query:
        return cls.query().gte(key, value)

    @classmethod
    def ne(cls, key: str, value: Any) -> Query:
        return cls.query().ne(key, value)

    @classmethod
    def in_(cls, key: str, values: Any) -> Query:
        return cls.query().in_(key, values)

    @classmethod
    def nin(cls, key: str, values: Any) -> Query:
        return cls.query().nin(key, values)

    @classmethod
    def and_(cls, *clauses: Any) -> Query:
        return cls.query().and_(*clauses)

    @classmethod
    def or_(cls, *clauses: Any) -> Query:
        return cls.query().or_(*clauses)

    @classmethod
    def nor(cls, *clauses: Any) -> Query:
        return cls.query().nor(*clauses)

    @classmethod
    def populate(cls, *args: Any) -> Query:
        return cls.query().populate(*args)

    @classmethod
    async def find(cls, query: Optional[Mapping[str, Any]] = None) -> List[Model]:
        return await cls.query().find(query)

    @classmethod
    async def all(cls) -> List[Model]:
        """Shortcut: every document in the collection."""
        return await cls.query().all()

    @classmethod
    async def count(cls, query: Optional[Mapping[str, Any]] = None) -> int:
        return await cls.query().count(query)

    @classmethod
    async def find_one(cls, query: Optional[Mapping[str, Any]] = None) -> Optional[Model]:
        return await cls.query().find_one(query)

    @classmethod
    async def find_by_id(cls, id: Any) -> Optional[Model]:
        return await cls.query().find_by_id(id)

    @classmethod
    async def index(cls, fields: Any, **options: Any) -> Any:
        """
        Create an index on this model's collection.

        Usage:
            await Post.index("slug", unique=True)
            await Post.index([("author", 1), ("created_at", -1)])
        """
        return await cls.collection().index(fields, **options)

    @classmethod
    async def indexes(cls) -> List[Dict[str, Any]]:
        return await cls.collection().indexes()

    @classmethod
    def id(cls, value: Any = None) -> Any:
        """Normalize ``value`` to a storage identifier, or generate a new one."""
        return cls.collection().id(value)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} _id={self.get('_id')!r}>"
