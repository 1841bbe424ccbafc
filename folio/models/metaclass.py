"""
Folio Model Metaclass — collection naming and registration.

Every Model subclass gets a ``collection_name``: an explicit
``collection = "..."`` / ``collection_name = "..."`` class attribute,
``Meta.collection``, or the lowercased class name. Concrete models are
registered in ModelRegistry.
"""

from __future__ import annotations

from typing import Any, Dict, Tuple

from .registry import ModelRegistry

__all__ = ["ModelMeta"]


class ModelMeta(type):
    """
    Metaclass for Folio models.

    Handles:
    - Meta class parsing (``collection``, ``abstract``)
    - Collection name defaulting
    - Model registration in ModelRegistry

    Usage:
        class Post(Model):
            collection = "posts"

        class Auditable(Model):
            class Meta:
                abstract = True
    """

    def __new__(
        mcs,
        name: str,
        bases: Tuple[type, ...],
        namespace: Dict[str, Any],
        **kwargs,
    ) -> ModelMeta:
        # Don't process the base Model class itself
        parents = [b for b in bases if isinstance(b, ModelMeta)]
        if not parents:
            return super().__new__(mcs, name, bases, namespace, **kwargs)

        meta_class = namespace.pop("Meta", None)

        # `collection = "..."` is sugar; the name `collection` belongs to the
        # classmethod that resolves the handle
        collection_attr = namespace.get("collection")
        if isinstance(collection_attr, str):
            namespace.pop("collection")
        else:
            collection_attr = None
        collection_attr = (
            collection_attr
            or namespace.pop("collection_name", None)
            or getattr(meta_class, "collection", None)
        )

        cls = super().__new__(mcs, name, bases, namespace, **kwargs)

        cls.collection_name = collection_attr or name.lower()
        cls._abstract = bool(getattr(meta_class, "abstract", False))

        if not cls._abstract:
            ModelRegistry.register(cls)

        return cls
