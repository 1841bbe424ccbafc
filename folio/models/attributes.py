"""
Folio Attribute Store — document attributes with change tracking.
"""

from __future__ import annotations

import copy
from typing import Any, ClassVar, Dict, Mapping, Optional

__all__ = ["AttributeStore"]


class AttributeStore:
    """
    Mixin holding a model's document attributes.

    ``changed`` keeps the latest value written per field through ``set``;
    ``previous`` keeps the value each field held immediately before it
    (``None`` when the field did not exist). Attributes passed to the
    constructor are not tracked.
    """

    defaults: ClassVar[Dict[str, Any]] = {}

    def __init__(self, attributes: Optional[Mapping[str, Any]] = None, **kwargs: Any):
        self.attributes: Dict[str, Any] = dict(attributes or {})
        self.attributes.update(kwargs)
        self.changed: Dict[str, Any] = {}
        self.previous: Dict[str, Any] = {}

    def get(self, key: Optional[str] = None) -> Any:
        """Return the value at ``key`` (``None`` if absent), or all attributes."""
        if key is None:
            return self.attributes
        return self.attributes.get(key)

    def set(self, key: Any, value: Any = None) -> Any:
        """
        Set one attribute, or several from a mapping.

        Returns the value for the single-key form and ``None`` for the
        mapping form.
        """
        if isinstance(key, Mapping):
            for k, v in key.items():
                self.set(k, v)
            return None

        self.previous[key] = self.get(key)
        self.attributes[key] = value
        self.changed[key] = value
        return value

    def set_defaults(self) -> None:
        """Fill every unset (``None``) attribute that has a declared default."""
        for key, default in self.defaults.items():
            if self.get(key) is None:
                self.set(key, copy.deepcopy(default))

    def to_json(self) -> Dict[str, Any]:
        return self.attributes
