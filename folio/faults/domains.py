"""
Folio faults - concrete fault types, grouped by domain.

Every constructor takes the context it reports as positional or keyword
arguments and accepts an optional ``metadata`` mapping that is merged
into the fault's metadata.
"""

from typing import Any, Dict, Optional

from .core import Fault, FaultDomain, Severity


def _context(metadata: Optional[Dict[str, Any]], **fields: Any) -> Dict[str, Any]:
    return {**fields, **(metadata or {})}


# ── Configuration ───────────────────────────────────────────────────────

class ConfigInvalidFault(Fault):
    """A configuration key holds an unusable value."""

    def __init__(self, key: str, reason: str, *, metadata: Optional[Dict[str, Any]] = None):
        super().__init__(
            "CONFIG_INVALID",
            f"Invalid configuration for '{key}': {reason}",
            domain=FaultDomain.CONFIG,
            metadata=_context(metadata, key=key, reason=reason),
        )


# ── Hooks ───────────────────────────────────────────────────────────────

class HookFault(Fault):
    """A lifecycle hook raised, or could not be invoked."""

    def __init__(
        self,
        model: str,
        when: str,
        action: str,
        hook: str,
        reason: str,
        *,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            "HOOK_FAILED",
            f"{when}:{action} hook '{hook}' on '{model}' failed: {reason}",
            domain=FaultDomain.HOOK,
            metadata=_context(metadata, model=model, when=when, action=action, hook=hook, reason=reason),
        )


class HookRegistrationFault(Fault):
    """Hook registered for an unknown phase or action, or with a non-callable."""

    def __init__(self, when: Any, action: Any, *, metadata: Optional[Dict[str, Any]] = None):
        super().__init__(
            "HOOK_REGISTRATION_INVALID",
            f"Cannot register hook for '{when}:{action}'",
            domain=FaultDomain.HOOK,
            metadata=_context(metadata, when=when, action=action),
        )


# ── Models ──────────────────────────────────────────────────────────────

class ReferenceFault(Fault):
    """A reference field holds nothing an identifier can be taken from."""

    def __init__(self, model: str, field: str, reason: str, *, metadata: Optional[Dict[str, Any]] = None):
        super().__init__(
            "REFERENCE_UNRESOLVABLE",
            f"Cannot flatten reference '{model}.{field}': {reason}",
            domain=FaultDomain.MODEL,
            metadata=_context(metadata, model=model, field=field, reason=reason),
        )


class ModelNotFoundFault(Fault):
    """No model class is registered under the requested name."""

    def __init__(self, model_name: str, *, metadata: Optional[Dict[str, Any]] = None):
        super().__init__(
            "MODEL_NOT_FOUND",
            f"No model named '{model_name}' is registered",
            domain=FaultDomain.MODEL,
            metadata=_context(metadata, model=model_name),
        )


# ── Queries ─────────────────────────────────────────────────────────────

class QueryFault(Fault):
    """A query chain was built with bad arguments or resolved twice."""

    def __init__(self, model: str, operation: str, reason: str, *, metadata: Optional[Dict[str, Any]] = None):
        super().__init__(
            "QUERY_INVALID",
            f"Query on '{model}' ({operation}) is invalid: {reason}",
            domain=FaultDomain.QUERY,
            metadata=_context(metadata, model=model, operation=operation, reason=reason),
        )


# ── Storage ─────────────────────────────────────────────────────────────

class StorageFault(Fault):
    """The storage collaborator rejected an operation."""

    def __init__(
        self,
        collection: str,
        operation: str,
        reason: str,
        *,
        retryable: Optional[bool] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            "STORAGE_FAILED",
            f"Storage operation '{operation}' on '{collection}' failed: {reason}",
            domain=FaultDomain.STORAGE,
            retryable=retryable,
            metadata=_context(metadata, collection=collection, operation=operation, reason=reason),
        )


class ConnectionFault(Fault):
    """Opening or using a store connection failed."""

    def __init__(self, url: str, reason: str, *, metadata: Optional[Dict[str, Any]] = None):
        super().__init__(
            "CONNECTION_FAILED",
            f"Store connection failed ({url}): {reason}",
            domain=FaultDomain.CONNECTION,
            severity=Severity.FATAL,
            metadata=_context(metadata, url=url, reason=reason),
        )
