"""
Folio faults - structured fault handling.

Every error Folio raises on purpose is a ``Fault``: an exception carrying a
stable machine-readable code, a domain, a severity and retry semantics.

Core exports:
- Fault: Base fault class
- FaultDomain: Domain enumeration
- Severity: Severity levels
- Domain faults: HookFault, ReferenceFault, QueryFault, StorageFault, ...
"""

from .core import (
    DOMAIN_DEFAULTS,
    Fault,
    FaultDomain,
    Severity,
)

from .domains import (
    ConfigInvalidFault,
    ConnectionFault,
    HookFault,
    HookRegistrationFault,
    ModelNotFoundFault,
    QueryFault,
    ReferenceFault,
    StorageFault,
)

__all__ = [
    # Core types
    "DOMAIN_DEFAULTS",
    "Fault",
    "FaultDomain",
    "Severity",
    # Domain faults
    "ConfigInvalidFault",
    "ConnectionFault",
    "HookFault",
    "HookRegistrationFault",
    "ModelNotFoundFault",
    "QueryFault",
    "ReferenceFault",
    "StorageFault",
]
