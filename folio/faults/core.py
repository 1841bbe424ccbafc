"""
Folio faults - taxonomy shared by every layer.

A fault is an exception carrying a stable ``code``, the ``domain`` it was
raised from, a ``severity`` and whether retrying the operation can help.
Severity and retryability fall back to per-domain defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class Severity(str, Enum):
    """How loudly a fault should be reported."""
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


@dataclass(frozen=True, eq=False)
class FaultDomain:
    """
    Area of Folio a fault is attributed to.

    Compares equal to another domain with the same name, or to the bare
    name string.
    """

    name: str
    description: str = ""

    @property
    def value(self) -> str:
        return self.name

    def __str__(self) -> str:
        return self.name

    def __eq__(self, other: Any) -> bool:
        other_name = other.name if isinstance(other, FaultDomain) else other
        return self.name == other_name

    def __hash__(self) -> int:
        return hash(self.name)


FaultDomain.CONFIG = FaultDomain("config", "Invalid or missing configuration")
FaultDomain.HOOK = FaultDomain("hook", "Lifecycle hook registration and execution")
FaultDomain.MODEL = FaultDomain("model", "Model lookup and reference handling")
FaultDomain.QUERY = FaultDomain("query", "Query construction and resolution")
FaultDomain.STORAGE = FaultDomain("storage", "Rejected storage operations")
FaultDomain.CONNECTION = FaultDomain("connection", "Store connections")


# domain -> (severity, retryable)
DOMAIN_DEFAULTS: Dict[FaultDomain, Tuple[Severity, bool]] = {
    FaultDomain.CONFIG: (Severity.FATAL, False),
    FaultDomain.HOOK: (Severity.ERROR, False),
    FaultDomain.MODEL: (Severity.ERROR, False),
    FaultDomain.QUERY: (Severity.ERROR, False),
    FaultDomain.STORAGE: (Severity.ERROR, True),
    FaultDomain.CONNECTION: (Severity.FATAL, True),
}


class Fault(Exception):
    """
    Structured Folio exception.

    Attributes:
        code: Stable identifier, e.g. "HOOK_FAILED"
        message: Human-readable description
        domain: FaultDomain the fault belongs to
        severity: Defaults per domain
        retryable: Defaults per domain
        metadata: Extra context (model, field, collection, ...)

    Example:
        raise Fault("POST_LOCKED", "Post is locked for editing", domain=FaultDomain.MODEL)
    """

    def __init__(
        self,
        code: str,
        message: str,
        *,
        domain: FaultDomain,
        severity: Optional[Severity] = None,
        retryable: Optional[bool] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.domain = domain

        default_severity, default_retryable = DOMAIN_DEFAULTS.get(domain, (Severity.ERROR, False))
        self.severity = severity if severity is not None else default_severity
        self.retryable = default_retryable if retryable is None else retryable
        self.metadata: Dict[str, Any] = dict(metadata or {})

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.code} domain={self.domain} severity={self.severity.value}>"

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict form for structured log records."""
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "metadata": self.metadata,
        }
