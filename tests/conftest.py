"""
Shared pytest fixtures for ibmdb-adapter tests.

This module provides:
- A fresh ``PoolRegistry`` per test wired to ``FakeConnection`` handles
- Structlog reset between tests
"""

from __future__ import annotations

import pytest
import structlog

from ibmdb_adapter.pool import PoolRegistry
from tests._support.fakes import FakeConnection


@pytest.fixture
def registry() -> PoolRegistry:
    """Registry whose factory builds ``FakeConnection`` handles."""
    return PoolRegistry(factory=FakeConnection)


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any ``configure_logging`` call made by a test."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
