"""
Shared test fixtures and helpers for the Folio test suite.
"""

import uuid

import pytest

from folio.db import engine
from folio.db.backends.memory import drop_store
from folio.models.registry import ModelRegistry


# ============================================================================
# Registry / Connection
# ============================================================================


@pytest.fixture(autouse=True)
def reset_registry():
    """Reset ModelRegistry between tests to avoid cross-contamination."""
    old_models = ModelRegistry._models.copy()
    yield
    ModelRegistry._models.clear()
    ModelRegistry._models.update(old_models)


@pytest.fixture(autouse=True)
def db():
    """A fresh memory store as the process default connection."""
    engine.reset()
    url = f"memory://test-{uuid.uuid4().hex[:8]}"
    connection = engine.connect(url)
    yield connection
    engine.reset()
    drop_store(url)


@pytest.fixture
def clock(monkeypatch):
    """Controllable lifecycle clock; set ``clock.now`` to move time."""

    class _Clock:
        now = 1_700_000_000

    monkeypatch.setattr("folio.models.base._now", lambda: _Clock.now)
    return _Clock
