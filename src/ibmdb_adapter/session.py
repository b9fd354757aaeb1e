"""
Connection session: the stateful half of the adapter.

A session borrows one pooled-connection handle from the registry and
dispatches every command to its *current connection*. During a
transaction the current connection is temporarily swapped for the
dedicated transactional connection the pool's transaction scope yields,
and swapped back on every exit path.

Manifesto:
    The store exposes transactions only as a connector-managed scope that
    commits on normal completion and rolls back on error. There are no
    commit/rollback verbs to call, so a session never pretends there are:
    ``commit()`` and ``rollback()`` always raise.

Architecture:
    ::

        DISCONNECTED ──connect()──► CONNECTED ──begin_transaction()──► IN_TRANSACTION
             ▲                        │  ▲                                  │
             └──────close()───────────┘  └────── scope exits (ok/error) ────┘

        dispatch(kind, sql, bindings)
            insert          → insert_and_get_id → QueryResult.insert_id
            update / delete → update            → QueryResult.affected_rows
            select / other  → query             → QueryResult.data

Guardrails:
    ❌ DON'T: share one Session between concurrent tasks; the current
       connection field is a single logical lock
    ✅ DO: create one Session per task; sessions share pools by identity

Examples:
    >>> session = Session()
    >>> await session.connect("main", ConnectionConfig(host="as400", database="SAMPLE"))
    >>> result = await session.dispatch(CommandKind.SELECT, 'select * from "users"')
    >>> await session.begin_transaction(lambda s: s.dispatch("update", sql, [1]))

Tags:
    session, transaction, connection, ibmdb-adapter
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from ibmdb_adapter.config import translate_config
from ibmdb_adapter.ddl import build_create_table
from ibmdb_adapter.errors import (
    DatabaseConnectionError,
    QueryError,
    UnsupportedOperationError,
)
from ibmdb_adapter.logging import get_logger
from ibmdb_adapter.pool import PooledConnection, PoolRegistry, pool_registry
from ibmdb_adapter.query import QueryState, translate_select
from ibmdb_adapter.schema import TableSchema
from ibmdb_adapter.types import CommandKind, ConnectionConfig, QueryResult, SessionState

logger = get_logger(__name__)

T = TypeVar("T")


# =============================================================================
# WORK-UNIT OUTCOMES
# =============================================================================


@dataclass(frozen=True)
class Immediate(Generic[T]):
    """A work result that is already available."""

    value: T

    async def resolve(self) -> T:
        return self.value


@dataclass(frozen=True)
class Deferred(Generic[T]):
    """A work result that still has to be awaited."""

    awaitable: Awaitable[T]

    async def resolve(self) -> T:
        return await self.awaitable


Outcome = Immediate | Deferred


def as_outcome(value: Any) -> Immediate | Deferred:
    """Normalise a work callback's return value into an outcome."""
    if isinstance(value, (Immediate, Deferred)):
        return value
    if inspect.isawaitable(value):
        return Deferred(value)
    return Immediate(value)


Work = Callable[["Session"], Any]


# =============================================================================
# SESSION
# =============================================================================


def _command_kind(command: CommandKind | str) -> CommandKind | str:
    try:
        return CommandKind(command)
    except ValueError:
        return command


class Session:
    """One logical session over a shared, identity-keyed pool."""

    def __init__(self, registry: PoolRegistry | None = None):
        self._registry = registry if registry is not None else pool_registry
        self._connection: PooledConnection | None = None
        self._prior: PooledConnection | None = None
        self._dsn: str | None = None
        self._state = SessionState.DISCONNECTED
        self._log = logger

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def dsn(self) -> str | None:
        """Data-source identity of the last successful connect."""
        return self._dsn

    @property
    def connection(self) -> PooledConnection | None:
        """The connection commands currently run against."""
        return self._connection

    @property
    def in_transaction(self) -> bool:
        return self._state is SessionState.IN_TRANSACTION

    # -- Lifecycle ---------------------------------------------------------

    async def connect(self, dsn: str | None, config: ConnectionConfig) -> Session:
        """Borrow the pool for ``dsn`` (default: derived from ``config``).

        Raises:
            DatabaseConnectionError: If translating the config or creating
                the pool fails. The session is left as it was.
            UnsupportedOperationError: If called inside a transaction.
        """
        if self.in_transaction:
            raise UnsupportedOperationError("Cannot reconnect inside a transaction")

        dsn = dsn or config.data_source_id()
        try:
            options = translate_config(config)
            pool = self._registry.acquire(dsn, options)
        except Exception as e:
            logger.error("session_connect_failed", dsn=dsn, error=str(e))
            raise DatabaseConnectionError(
                f"Failed to connect to {dsn}: {e}",
                cause=e,
            ).with_context(dsn=dsn) from e

        self._connection = pool
        self._dsn = dsn
        self._state = SessionState.CONNECTED
        self._log = logger.bind(dsn=dsn)
        self._log.info("session_connected")
        return self

    def close(self) -> None:
        """Detach this session's connection; the pool is untouched.

        Calling it on a detached session is a no-op.
        """
        if self._connection is None and self._prior is None:
            return
        self._connection = None
        self._prior = None
        self._state = SessionState.DISCONNECTED
        self._log.info("session_closed")

    def release(self) -> None:
        """Alias of :meth:`close`."""
        self.close()

    @staticmethod
    async def global_close(registry: PoolRegistry | None = None) -> None:
        """Tear down every pool in ``registry`` (default: the global one).

        Sessions still holding handles fail on their next command.
        """
        target = registry if registry is not None else pool_registry
        await target.teardown_all()

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(self, *args) -> None:
        self.close()

    # -- Commands ----------------------------------------------------------

    def _require_connection(self) -> PooledConnection:
        if self._connection is None:
            raise DatabaseConnectionError("Session is not connected")
        return self._connection

    async def dispatch(
        self,
        command: CommandKind | str,
        sql: str,
        bindings: Sequence[Any] | None = None,
    ) -> QueryResult:
        """Run ``sql`` with the verb matching ``command``.

        Unknown command kinds run as queries.

        Raises:
            DatabaseConnectionError: If the session is not connected.
            QueryError: If the verb fails; carries ``sql`` and ``bindings``.
        """
        connection = self._require_connection()
        kind = _command_kind(command)
        params = list(bindings or ())

        try:
            if kind is CommandKind.INSERT:
                insert_id = await connection.insert_and_get_id(sql, params)
                return QueryResult(kind, insert_id=insert_id)
            if kind in (CommandKind.UPDATE, CommandKind.DELETE):
                rows = await connection.update(sql, params)
                return QueryResult(kind, affected_rows=rows)
            data = await connection.query(sql, params)
            return QueryResult(kind, data=data)
        except Exception as e:
            raise self._query_error(e, kind, sql, params) from e

    async def execute(self, sql: str, bindings: Sequence[Any] | None = None) -> None:
        """Run a statement with no result (DDL and the like)."""
        connection = self._require_connection()
        params = list(bindings or ())
        try:
            await connection.execute(sql, params)
        except Exception as e:
            raise self._query_error(e, "execute", sql, params) from e

    async def create_table(self, schema: TableSchema) -> str:
        """Create ``schema``'s table; returns the DDL that ran."""
        sql = build_create_table(schema)
        await self.execute(sql)
        return sql

    async def select(
        self, state: QueryState, bindings: Sequence[Any] | None = None
    ) -> list[dict[str, Any]]:
        """Translate ``state`` and return its rows."""
        result = await self.dispatch(CommandKind.SELECT, translate_select(state), bindings)
        return result.data or []

    def _query_error(
        self, error: Exception, kind: CommandKind | str, sql: str, params: list[Any]
    ) -> QueryError:
        command = kind.value if isinstance(kind, CommandKind) else str(kind)
        self._log.error("query_failed", command=command, sql=sql, error=str(error))
        err = QueryError(f"Query failed: {error}", sql=sql, bindings=params, cause=error)
        err.with_context(dsn=self._dsn, command=command)
        return err

    # -- Transactions ------------------------------------------------------

    async def begin_transaction(self, work: Work | None = None) -> Any:
        """Run ``work(session)`` inside the pool's transaction scope.

        While the scope runs, the session's current connection is the
        dedicated transactional one. The connector commits when the scope
        returns and rolls back when it raises. On every exit path the prior
        connection is restored before the result or error reaches the
        caller; errors propagate unchanged.

        ``work`` may return a plain value, an awaitable, or an explicit
        :class:`Immediate` / :class:`Deferred`; the resolved value is
        returned.
        """
        connection = self._require_connection()
        if self.in_transaction:
            raise UnsupportedOperationError("Nested transactions are not supported")

        async def scope(tx_connection: PooledConnection) -> Any:
            self._prior = self._connection
            self._connection = tx_connection
            self._state = SessionState.IN_TRANSACTION
            self._log.info("transaction_started")
            try:
                if work is None:
                    return None
                return await as_outcome(work(self)).resolve()
            finally:
                self._connection = self._prior
                self._prior = None
                self._state = (
                    SessionState.CONNECTED
                    if self._connection is not None
                    else SessionState.DISCONNECTED
                )

        try:
            result = await connection.transaction(scope)
        except Exception as e:
            self._log.warning("transaction_failed", error=str(e))
            raise
        self._log.info("transaction_finished")
        return result

    async def commit(self) -> None:
        """Always raises: the transaction scope commits implicitly."""
        raise UnsupportedOperationError(
            "Explicit commit is not supported; transactions commit when their scope completes"
        )

    async def rollback(self) -> None:
        """Always raises: the transaction scope rolls back implicitly."""
        raise UnsupportedOperationError(
            "Explicit rollback is not supported; transactions roll back when their scope raises"
        )


__all__ = [
    "Immediate",
    "Deferred",
    "Outcome",
    "as_outcome",
    "Session",
]
