"""Default pooled connector over the ``ibm-db`` driver.

Implements the :class:`~ibmdb_adapter.pool.PooledConnection` verbs on
top of the low-level ``ibm_db`` module. Driver calls block, so each verb
runs in a worker thread via :func:`asyncio.to_thread`.

Install the driver::

    pip install ibm-db
    # or:  pip install ibmdb-adapter[ibmdb]

The driver is import-guarded: if ``ibm_db`` is not installed a clear
:class:`~ibmdb_adapter.errors.ConfigError` is raised on first use rather
than at import time.

Native options (see :mod:`ibmdb_adapter.config`) map onto the connection
string: ``host`` (``host:port``) → ``HOSTNAME``/``PORT``,
``database name`` → ``DATABASE``, ``user`` → ``UID``, ``password`` →
``PWD``. A numeric ``query timeout mechanism`` becomes the statement
query-timeout attribute. Any other option is passed through as a
``KEY=VALUE;`` connection keyword; values containing ``;``, ``=`` or
braces are brace-quoted (``PWD={p;w};``).
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping, Sequence
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from ibmdb_adapter.config import DATABASE_NAME, QUERY_TIMEOUT
from ibmdb_adapter.errors import ConfigError, DatabaseConnectionError, UnsupportedOperationError
from ibmdb_adapter.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_PORT = 50000
DEFAULT_MAX_IDLE = 5

IDENTITY_SQL = "select identity_val_local() as id from sysibm.sysdummy1"

_MAPPED_OPTIONS = frozenset({"host", "user", "password", DATABASE_NAME, QUERY_TIMEOUT})
_SPECIAL_CHARS = frozenset(";={}")


def _load_driver() -> Any:
    try:
        import ibm_db
    except ImportError:
        raise ConfigError(
            "ibm-db is required for the default connector. Install with: pip install ibm-db"
        ) from None
    return ibm_db


def connection_string(options: Mapping[str, Any]) -> str:
    """Build an ``ibm_db`` connection string from native options.

    >>> connection_string({"host": "as400:446", "user": "db2", "password": "pw",
    ...                    "database name": "SAMPLE"})
    'DATABASE=SAMPLE;HOSTNAME=as400;PORT=446;PROTOCOL=TCPIP;UID=db2;PWD=pw;'
    """
    hostname, _, port = str(options.get("host") or "localhost").partition(":")
    keywords = {
        "DATABASE": options.get(DATABASE_NAME) or "",
        "HOSTNAME": hostname,
        "PORT": port or DEFAULT_PORT,
        "PROTOCOL": "TCPIP",
        "UID": options.get("user") or "",
        "PWD": options.get("password") or "",
    }
    for key, value in options.items():
        if key not in _MAPPED_OPTIONS and value is not None:
            keywords[key] = value
    return "".join(f"{key}={_keyword_value(value)};" for key, value in keywords.items())


def _keyword_value(value: Any) -> str:
    """Brace-quote values the connection-string grammar would split on.

    >>> _keyword_value("p;w=x")
    '{p;w=x}'
    """
    text = str(value)
    if any(c in text for c in _SPECIAL_CHARS) or text != text.strip():
        return "{" + text.replace("}", "}}") + "}"
    return text


def query_timeout(options: Mapping[str, Any]) -> int | None:
    """Statement timeout in seconds, if the native option holds one."""
    value = options.get(QUERY_TIMEOUT)
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None


class DriverConnection:
    """Blocking verbs over one raw ``ibm_db`` connection."""

    def __init__(self, driver: Any, conn: Any, timeout: int | None = None):
        self.driver = driver
        self.conn = conn
        self.timeout = timeout

    def run(self, sql: str, bindings: Sequence[Any] = ()) -> Any:
        if self.timeout:
            stmt = self.driver.prepare(
                self.conn, sql, {self.driver.SQL_ATTR_QUERY_TIMEOUT: self.timeout}
            )
        else:
            stmt = self.driver.prepare(self.conn, sql)
        if bindings:
            self.driver.execute(stmt, tuple(bindings))
        else:
            self.driver.execute(stmt)
        return stmt

    def fetch_all(self, sql: str, bindings: Sequence[Any] = ()) -> list[dict[str, Any]]:
        stmt = self.run(sql, bindings)
        rows = []
        row = self.driver.fetch_assoc(stmt)
        while row:
            rows.append(dict(row))
            row = self.driver.fetch_assoc(stmt)
        return rows

    def update(self, sql: str, bindings: Sequence[Any] = ()) -> int:
        stmt = self.run(sql, bindings)
        return self.driver.num_rows(stmt)

    def insert_and_get_id(self, sql: str, bindings: Sequence[Any] = ()) -> Any:
        self.run(sql, bindings)
        stmt = self.driver.exec_immediate(self.conn, IDENTITY_SQL)
        row = self.driver.fetch_tuple(stmt)
        return row[0] if row else None

    def begin(self) -> None:
        self.driver.autocommit(self.conn, self.driver.SQL_AUTOCOMMIT_OFF)

    def commit(self) -> None:
        try:
            self.driver.commit(self.conn)
        finally:
            self.driver.autocommit(self.conn, self.driver.SQL_AUTOCOMMIT_ON)

    def rollback(self) -> None:
        try:
            self.driver.rollback(self.conn)
        finally:
            self.driver.autocommit(self.conn, self.driver.SQL_AUTOCOMMIT_ON)

    def close(self) -> None:
        self.driver.close(self.conn)


class TransactionConnection:
    """Dedicated connection handed to a transaction scope.

    Valid only while the scope runs; afterwards every verb raises
    :class:`DatabaseConnectionError`.
    """

    def __init__(self, conn: DriverConnection):
        self._conn = conn
        self._active = True

    def _check(self) -> DriverConnection:
        if not self._active:
            raise DatabaseConnectionError("Transaction scope has ended")
        return self._conn

    def end(self) -> None:
        self._active = False

    async def query(self, sql: str, bindings: Sequence[Any] = ()) -> list[dict[str, Any]]:
        return await asyncio.to_thread(self._check().fetch_all, sql, bindings)

    async def update(self, sql: str, bindings: Sequence[Any] = ()) -> int:
        return await asyncio.to_thread(self._check().update, sql, bindings)

    async def insert_and_get_id(self, sql: str, bindings: Sequence[Any] = ()) -> Any:
        return await asyncio.to_thread(self._check().insert_and_get_id, sql, bindings)

    async def execute(self, sql: str, bindings: Sequence[Any] = ()) -> None:
        await asyncio.to_thread(self._check().run, sql, bindings)

    async def transaction(self, scope: Callable[[Any], Awaitable[T]]) -> T:
        raise UnsupportedOperationError("Nested transactions are not supported")

    async def close(self) -> None:
        # Owned by the enclosing scope
        return None


class IbmDbPool:
    """Pool of ``ibm_db`` connections for one data source.

    Connections open lazily on first checkout and return to an idle list
    of at most ``max_idle`` entries afterwards. A connection whose verb
    raised is closed instead of returned. Pool connections run in
    autocommit mode; ``transaction`` switches its dedicated connection to
    manual commit for the scope.
    """

    def __init__(self, options: Mapping[str, Any], max_idle: int = DEFAULT_MAX_IDLE):
        self._conn_str = connection_string(options)
        self._timeout = query_timeout(options)
        self._max_idle = max_idle
        self._idle: list[DriverConnection] = []
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _open(self) -> DriverConnection:
        driver = _load_driver()
        conn = driver.connect(self._conn_str, "", "")
        return DriverConnection(driver, conn, self._timeout)

    async def _checkout(self) -> DriverConnection:
        with self._lock:
            if self._closed:
                raise DatabaseConnectionError("Pool has been torn down")
            if self._idle:
                return self._idle.pop()
        return await asyncio.to_thread(self._open)

    async def _checkin(self, conn: DriverConnection) -> None:
        with self._lock:
            if not self._closed and len(self._idle) < self._max_idle:
                self._idle.append(conn)
                return
        await asyncio.to_thread(self._close_quiet, conn)

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[DriverConnection]:
        conn = await self._checkout()
        try:
            yield conn
        except BaseException:
            # State unknown after a failed call
            await asyncio.to_thread(self._close_quiet, conn)
            raise
        await self._checkin(conn)

    async def query(self, sql: str, bindings: Sequence[Any] = ()) -> list[dict[str, Any]]:
        async with self._connection() as conn:
            return await asyncio.to_thread(conn.fetch_all, sql, bindings)

    async def update(self, sql: str, bindings: Sequence[Any] = ()) -> int:
        async with self._connection() as conn:
            return await asyncio.to_thread(conn.update, sql, bindings)

    async def insert_and_get_id(self, sql: str, bindings: Sequence[Any] = ()) -> Any:
        async with self._connection() as conn:
            return await asyncio.to_thread(conn.insert_and_get_id, sql, bindings)

    async def execute(self, sql: str, bindings: Sequence[Any] = ()) -> None:
        async with self._connection() as conn:
            await asyncio.to_thread(conn.run, sql, bindings)

    async def transaction(self, scope: Callable[[TransactionConnection], Awaitable[T]]) -> T:
        """Run ``scope`` on a dedicated connection; commit on return,
        roll back on error."""
        async with self._connection() as conn:
            await asyncio.to_thread(conn.begin)
            tx = TransactionConnection(conn)
            try:
                result = await scope(tx)
            except BaseException:
                tx.end()
                await asyncio.to_thread(self._rollback_quiet, conn)
                raise
            tx.end()
            await asyncio.to_thread(conn.commit)
            return result

    async def close(self) -> None:
        """Close idle connections; checked-out ones close on return."""
        with self._lock:
            self._closed = True
            idle, self._idle = self._idle, []
        for conn in idle:
            await asyncio.to_thread(self._close_quiet, conn)

    @staticmethod
    def _rollback_quiet(conn: DriverConnection) -> None:
        try:
            conn.rollback()
        except Exception as e:
            logger.warning("transaction_rollback_failed", error=str(e))

    @staticmethod
    def _close_quiet(conn: DriverConnection) -> None:
        try:
            conn.close()
        except Exception as e:
            logger.warning("connection_close_failed", error=str(e))


__all__ = [
    "DEFAULT_PORT",
    "DEFAULT_MAX_IDLE",
    "IDENTITY_SQL",
    "connection_string",
    "query_timeout",
    "DriverConnection",
    "TransactionConnection",
    "IbmDbPool",
]
