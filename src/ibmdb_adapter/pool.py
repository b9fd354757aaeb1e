"""
Process-wide pool registry keyed by data-source identity.

Manifesto:
    Opening a pool per session would defeat pooling. The registry holds at
    most one pooled-connection handle per data-source identity, created on
    first use and shared by every session connecting with that identity.

    - **First caller wins:** a later ``acquire`` with a different config
      for the same identity returns the existing handle
    - **Explicit teardown:** handles are only removed by ``teardown_all()``
    - **Opaque handles:** sessions borrow handles and never close them

Architecture:
    ::

        Session A ──┐                      ┌──────────────────────────┐
                    ├── acquire(dsn) ────► │ PoolRegistry             │
        Session B ──┘                      │  dsn-1 → PooledConnection │
                                           │  dsn-2 → PooledConnection │
                                           └──────────────────────────┘

Guardrails:
    ❌ DON'T: call ``teardown_all()`` while sessions still hold handles
    ✅ DO: close sessions first; stale handles fail on their next use

Tags:
    pool, registry, connection, ibmdb-adapter
"""

from __future__ import annotations

import threading
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, Protocol, TypeVar, runtime_checkable

from ibmdb_adapter.connector import IbmDbPool
from ibmdb_adapter.logging import get_logger, redact

logger = get_logger(__name__)

T = TypeVar("T")


@runtime_checkable
class PooledConnection(Protocol):
    """Verbs of the pooled-connection library.

    Every verb is a coroutine. ``transaction`` runs ``scope`` with a
    dedicated transactional connection exposing the same verbs; the scope
    commits when ``scope`` returns and rolls back when it raises.
    """

    async def query(self, sql: str, bindings: Sequence[Any] = ()) -> list[dict[str, Any]]:
        ...

    async def update(self, sql: str, bindings: Sequence[Any] = ()) -> int:
        ...

    async def insert_and_get_id(self, sql: str, bindings: Sequence[Any] = ()) -> Any:
        ...

    async def execute(self, sql: str, bindings: Sequence[Any] = ()) -> None:
        ...

    async def transaction(self, scope: Callable[[PooledConnection], Awaitable[T]]) -> T:
        ...

    async def close(self) -> None:
        ...


PoolFactory = Callable[[Mapping[str, Any]], PooledConnection]
"""Creates a pooled connection from translated native options."""


class PoolRegistry:
    """Maps data-source identities to pooled-connection handles."""

    def __init__(self, factory: PoolFactory | None = None):
        self._factory = factory
        self._pools: dict[str, PooledConnection] = {}
        self._lock = threading.Lock()

    def acquire(self, dsn: str, options: Mapping[str, Any]) -> PooledConnection:
        """Return the handle for ``dsn``, creating it from ``options`` if absent.

        Exceptions raised by the factory propagate and leave no entry.
        """
        with self._lock:
            pool = self._pools.get(dsn)
            if pool is not None:
                logger.debug("pool_reused", dsn=dsn)
                return pool

            pool = self._create(options)
            self._pools[dsn] = pool
        logger.info("pool_created", dsn=dsn, options=redact(options))
        return pool

    async def teardown_all(self) -> None:
        """Remove and close every handle."""
        with self._lock:
            pools = list(self._pools.items())
            self._pools.clear()

        for dsn, pool in pools:
            try:
                await pool.close()
            except Exception as e:
                logger.warning("pool_close_failed", dsn=dsn, error=str(e))
        logger.info("pools_torn_down", count=len(pools))

    def identities(self) -> list[str]:
        """Identities with a live handle."""
        with self._lock:
            return sorted(self._pools)

    def __contains__(self, dsn: object) -> bool:
        with self._lock:
            return dsn in self._pools

    def __len__(self) -> int:
        with self._lock:
            return len(self._pools)

    def _create(self, options: Mapping[str, Any]) -> PooledConnection:
        factory = self._factory or IbmDbPool
        return factory(options)


# Global registry
pool_registry = PoolRegistry()


__all__ = [
    "PooledConnection",
    "PoolFactory",
    "PoolRegistry",
    "pool_registry",
]
