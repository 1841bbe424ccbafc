"""
Folio References — populate fields on write and on read.

On write, every populate-declared field is flattened from live model
references to bare identifiers before anything reaches storage. On read,
``resolve_references`` swaps identifiers back for hydrated instances using
one batched ``$in`` lookup per field.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Sequence, TYPE_CHECKING

from ..faults.domains import ReferenceFault
from .attributes import AttributeStore
from .registry import ModelRegistry

if TYPE_CHECKING:
    from .base import Model

logger = logging.getLogger("folio.models")

__all__ = ["flatten_references", "resolve_references"]


def _identifier(model: Model, field: str, value: Any) -> Any:
    model_name = type(model).__name__
    if value is None:
        raise ReferenceFault(model_name, field, "field holds no reference")

    if isinstance(value, AttributeStore):
        ref_id = value.get("_id")
        if ref_id is None:
            raise ReferenceFault(
                model_name, field,
                f"referenced {type(value).__name__} has no _id; save it first",
            )
        return ref_id

    if isinstance(value, Mapping):
        ref_id = value.get("_id")
        if ref_id is None:
            raise ReferenceFault(model_name, field, "embedded document has no _id")
        return ref_id

    # Already an identifier
    return value


def flatten_references(model: Model) -> None:
    """
    Replace live references in populate fields with their ``_id``.

    Lists are flattened element-wise. Raises ReferenceFault before any
    attribute is written if a field cannot be flattened.
    """
    populate = model.options.get("populate") or {}
    flattened: Dict[str, Any] = {}
    for field in populate:
        value = model.get(field)
        if isinstance(value, (list, tuple)):
            flattened[field] = [_identifier(model, field, item) for item in value]
        else:
            flattened[field] = _identifier(model, field, value)

    for field, value in flattened.items():
        model.set(field, value)


def _ids_of(value: Any) -> List[Any]:
    if isinstance(value, list):
        return [v for v in value if v is not None]
    return [] if value is None else [value]


async def resolve_references(models: Sequence[Model], populate: Mapping[str, Any]) -> None:
    """
    Hydrate populate fields of ``models`` in place.

    A reference whose document is missing keeps its raw identifier, so a
    later save writes it back unchanged.
    """
    for field, target in populate.items():
        model_cls = ModelRegistry.resolve(target)

        ids: List[Any] = []
        seen = set()
        for model in models:
            for ref_id in _ids_of(model.get(field)):
                if ref_id not in seen:
                    seen.add(ref_id)
                    ids.append(ref_id)
        if not ids:
            continue

        found = await model_cls.where("_id").in_(ids).find()
        by_id = {doc.get("_id"): doc for doc in found}

        missing = seen.difference(by_id)
        if missing:
            logger.warning(
                f"{model_cls.__name__}: {len(missing)} referenced document(s) "
                f"for '{field}' not found"
            )

        for model in models:
            value = model.get(field)
            if isinstance(value, list):
                model.attributes[field] = [by_id.get(v, v) for v in value]
            elif value is not None:
                model.attributes[field] = by_id.get(value, value)
