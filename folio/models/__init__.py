"""
Folio Model System — document models, lifecycle hooks and queries.

Usage:
    from folio.models import Model

    class Post(Model):
        collection = "posts"
        defaults = {"status": "draft"}

        def configure(self):
            self.before("save", "validate")

Public API:
    - Model: Base class for all models
    - Query: Chainable query builder
    - HookRegistry: Per-instance lifecycle hooks
    - ModelRegistry: Global model registry
"""

from .attributes import AttributeStore
from .base import Model
from .hooks import ACTIONS, PHASES, HookRegistry
from .metaclass import ModelMeta
from .query import Query
from .references import flatten_references, resolve_references
from .registry import ModelRegistry

__all__ = [
    "ACTIONS",
    "PHASES",
    "AttributeStore",
    "HookRegistry",
    "Model",
    "ModelMeta",
    "ModelRegistry",
    "Query",
    "flatten_references",
    "resolve_references",
]
