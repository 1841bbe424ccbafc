"""
Folio - async document models for MongoDB-style stores

Complete integration of:
- Models: attribute storage with change tracking and default values
- Hooks: before/after/around lifecycle hooks on create, update, remove, save
- Queries: lazy, chainable criteria with batched reference population
- Stores: MongoDB (via PyMongo's asyncio client) and an in-process memory store
- Faults: Structured error handling with fault domains
"""

__version__ = "0.1.0"

# ============================================================================
# Models
# ============================================================================

from .models import HookRegistry, Model, ModelRegistry, Query

# ============================================================================
# Connections
# ============================================================================

from .db import Connection, close, collection, connect, connect_from_config, disconnect
from .config import FolioConfig

# ============================================================================
# Faults
# ============================================================================

from .faults import (
    ConfigInvalidFault,
    ConnectionFault,
    Fault,
    FaultDomain,
    HookFault,
    HookRegistrationFault,
    ModelNotFoundFault,
    QueryFault,
    ReferenceFault,
    Severity,
    StorageFault,
)

__all__ = [
    "__version__",
    # Models
    "Model",
    "Query",
    "HookRegistry",
    "ModelRegistry",
    # Connections
    "Connection",
    "connect",
    "connect_from_config",
    "disconnect",
    "close",
    "collection",
    "FolioConfig",
    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
    "ConfigInvalidFault",
    "ConnectionFault",
    "HookFault",
    "HookRegistrationFault",
    "ModelNotFoundFault",
    "QueryFault",
    "ReferenceFault",
    "StorageFault",
]
