"""
Folio Model Registry — global registry for all Model subclasses.

Tracks concrete models by class name so query-time populate can name its
target model with a string.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Type, TYPE_CHECKING

from ..faults.domains import ModelNotFoundFault

if TYPE_CHECKING:
    from .base import Model

logger = logging.getLogger("folio.models.registry")

__all__ = ["ModelRegistry"]


class ModelRegistry:
    """
    Class-name index of concrete models, shared by the whole process.

    Later registrations under the same class name replace earlier ones.
    """

    _models: Dict[str, Type[Model]] = {}

    @classmethod
    def register(cls, model_cls: Type[Model]) -> None:
        """Index ``model_cls`` under its class name."""
        name = model_cls.__name__
        if name in cls._models and cls._models[name] is not model_cls:
            logger.debug(f"Model '{name}' re-registered")
        cls._models[name] = model_cls

    @classmethod
    def get(cls, name: str) -> Optional[Type[Model]]:
        """Look up a model class by name, or None."""
        return cls._models.get(name)

    @classmethod
    def resolve(cls, target: Any) -> Type[Model]:
        """
        Resolve a model class or registered model name.

        Raises:
            ModelNotFoundFault: If ``target`` names no registered model.
        """
        from .base import Model

        if isinstance(target, type) and issubclass(target, Model):
            return target
        if isinstance(target, str):
            model_cls = cls._models.get(target)
            if model_cls is not None:
                return model_cls
        raise ModelNotFoundFault(repr(target) if not isinstance(target, str) else target)

    @classmethod
    def all_models(cls) -> Dict[str, Type[Model]]:
        """Snapshot of the name -> model index."""
        return dict(cls._models)

    @classmethod
    def reset(cls) -> None:
        """Forget every registered model."""
        cls._models.clear()
