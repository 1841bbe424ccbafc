"""
Folio DB Backend — Base Adapter Interface.

All storage backends implement these two interfaces. ``Connection`` in
``folio.db.engine`` picks an adapter from the URL scheme and hands out
``Collection`` handles from it.

A ``Collection`` is the storage collaborator the model layer talks to:
- document CRUD (insert, update by id, remove, find, count)
- index management
- identifier normalization
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger("folio.db.backends")

__all__ = ["Collection", "StoreAdapter"]


class Collection(ABC):
    """
    Abstract collection handle.

    Criteria are Mongo-style filter mappings; ``options`` passed to
    ``find`` may carry ``limit``, ``skip`` and ``sort`` (an ordered mapping
    of field to 1/-1).
    """

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    async def insert(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a document. Returns the stored document including ``_id``."""
        ...

    @abstractmethod
    async def update_by_id(self, id: Any, doc: Dict[str, Any]) -> Any:
        """Replace the document stored under ``id`` with ``doc``."""
        ...

    @abstractmethod
    async def remove(self, criteria: Dict[str, Any]) -> Any:
        """Remove every document matching ``criteria``."""
        ...

    @abstractmethod
    async def find(
        self,
        criteria: Dict[str, Any],
        options: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Return matching documents as a list of mappings."""
        ...

    @abstractmethod
    async def count(self, criteria: Dict[str, Any]) -> int:
        """Count matching documents."""
        ...

    @abstractmethod
    async def index(self, fields: Any, **options: Any) -> Any:
        """Create an index on ``fields`` (a field name or a list of (field, direction))."""
        ...

    @abstractmethod
    async def indexes(self) -> List[Dict[str, Any]]:
        """List index descriptors."""
        ...

    @abstractmethod
    def id(self, value: Any = None) -> Any:
        """
        Normalize an identifier to the backend's native id type.

        ``None`` generates a fresh identifier.
        """
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} '{self.name}'>"


class StoreAdapter(ABC):
    """
    Abstract store adapter.

    One adapter instance backs one ``Connection``.
    """

    name: str = "base"

    @abstractmethod
    def connect(self, urls: Sequence[str], **options: Any) -> None:
        """Prepare the client for the given URLs."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the client."""
        ...

    @abstractmethod
    def collection(self, name: str) -> Collection:
        """Return a handle for collection ``name``."""
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        ...
