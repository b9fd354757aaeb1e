"""Tests for ``ibmdb_adapter.session``: lifecycle, dispatch, transactions."""

from __future__ import annotations

import pytest
import pytest_asyncio

from ibmdb_adapter.errors import (
    DatabaseConnectionError,
    QueryError,
    UnsupportedOperationError,
)
from ibmdb_adapter.pool import PoolRegistry, pool_registry
from ibmdb_adapter.query import Count, QueryState
from ibmdb_adapter.schema import AutoIncrement, TableSchema
from ibmdb_adapter.session import Deferred, Immediate, Session, as_outcome
from ibmdb_adapter.types import CommandKind, ConnectionConfig, SessionState

from tests._support.fakes import FakeConnection

CONFIG = ConnectionConfig(host="as400", port=446, user="db2", password="pw", database="SAMPLE")


@pytest_asyncio.fixture
async def session(registry: PoolRegistry) -> Session:
    s = Session(registry)
    await s.connect("main", CONFIG)
    return s


class TestConnect:
    @pytest.mark.asyncio
    async def test_initial_state(self, registry: PoolRegistry) -> None:
        s = Session(registry)
        assert s.state is SessionState.DISCONNECTED
        assert s.connection is None

    @pytest.mark.asyncio
    async def test_connect_uses_translated_config(self, registry: PoolRegistry) -> None:
        s = Session(registry)
        assert await s.connect("main", CONFIG) is s
        assert s.state is SessionState.CONNECTED
        assert s.dsn == "main"
        assert s.connection.options["host"] == "as400:446"
        assert s.connection.options["database name"] == "SAMPLE"

    @pytest.mark.asyncio
    async def test_default_identity(self, registry: PoolRegistry) -> None:
        s = Session(registry)
        await s.connect(None, CONFIG)
        assert s.dsn == "ibmdb://db2@as400:446/SAMPLE"
        assert s.dsn in registry

    @pytest.mark.asyncio
    async def test_sessions_share_pool_by_identity(self, registry: PoolRegistry) -> None:
        a = await Session(registry).connect("main", CONFIG)
        b = await Session(registry).connect("main", ConnectionConfig(host="other"))
        assert a.connection is b.connection
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_empty_custom_registry_receives_handle(self) -> None:
        mine = PoolRegistry(factory=FakeConnection)
        s = await Session(mine).connect("isolated", CONFIG)
        assert "isolated" in mine
        assert "isolated" not in pool_registry
        assert isinstance(s.connection, FakeConnection)

    @pytest.mark.asyncio
    async def test_failure_raises_connection_error(self) -> None:
        def broken(options):
            raise RuntimeError("refused")

        s = Session(PoolRegistry(factory=broken))
        with pytest.raises(DatabaseConnectionError, match="refused") as exc:
            await s.connect("main", CONFIG)
        assert exc.value.context.dsn == "main"
        assert isinstance(exc.value.cause, RuntimeError)
        assert s.state is SessionState.DISCONNECTED
        assert s.connection is None
        assert s.dsn is None


class TestDispatch:
    @pytest.mark.asyncio
    async def test_insert(self, session: Session) -> None:
        result = await session.dispatch(CommandKind.INSERT, "insert into t values (?)", [1])
        assert result.insert_id == 42
        assert result.affected_rows is None and result.data is None
        assert session.connection.calls == [("insert_and_get_id", "insert into t values (?)", [1])]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", [CommandKind.UPDATE, CommandKind.DELETE])
    async def test_update_and_delete(self, session: Session, kind: CommandKind) -> None:
        result = await session.dispatch(kind, "update t set a = ?", [2])
        assert result.affected_rows == 3
        assert result.command is kind
        assert session.connection.calls[0][0] == "update"

    @pytest.mark.asyncio
    async def test_select(self, session: Session) -> None:
        result = await session.dispatch("select", "select * from t")
        assert result.data == [{"id": 1}]
        assert session.connection.calls == [("query", "select * from t", [])]

    @pytest.mark.asyncio
    async def test_unknown_kind_runs_as_query(self, session: Session) -> None:
        result = await session.dispatch("create", "create table t (a int)")
        assert result.command == "create"
        assert session.connection.calls[0][0] == "query"

    @pytest.mark.asyncio
    async def test_failure_raises_query_error(self, session: Session) -> None:
        cause = RuntimeError("SQL0204 not found")
        session.connection.fail_with = cause
        with pytest.raises(QueryError) as exc:
            await session.dispatch(CommandKind.SELECT, "select * from missing", [7])
        err = exc.value
        assert err.sql == "select * from missing"
        assert list(err.bindings) == [7]
        assert err.cause is cause
        assert err.context.dsn == "main"
        assert err.context.command == "select"
        assert len(session.connection.calls) == 1

    @pytest.mark.asyncio
    async def test_requires_connection(self, registry: PoolRegistry) -> None:
        with pytest.raises(DatabaseConnectionError, match="not connected"):
            await Session(registry).dispatch(CommandKind.SELECT, "select 1 from t")

    @pytest.mark.asyncio
    async def test_execute(self, session: Session) -> None:
        await session.execute("drop table t")
        assert session.connection.calls == [("execute", "drop table t", [])]

    @pytest.mark.asyncio
    async def test_execute_failure(self, session: Session) -> None:
        session.connection.fail_with = RuntimeError("locked")
        with pytest.raises(QueryError, match="locked") as exc:
            await session.execute("drop table t")
        assert exc.value.context.command == "execute"

    @pytest.mark.asyncio
    async def test_create_table(self, session: Session) -> None:
        schema = TableSchema("users")
        schema.add_field("id", "int", primary=True, auto_increment=AutoIncrement())
        sql = await session.create_table(schema)
        assert sql.startswith('create table "users"')
        assert session.connection.calls == [("execute", sql, [])]

    @pytest.mark.asyncio
    async def test_select_state(self, session: Session) -> None:
        rows = await session.select(QueryState("users", where="id = ?", limit=Count(1)), [5])
        assert rows == [{"id": 1}]
        assert session.connection.calls == [
            ("query", 'select * from "users" where id = ? fetch first 1 rows only', [5])
        ]


class TestTransaction:
    @pytest.mark.asyncio
    async def test_work_runs_on_transactional_connection(self, session: Session) -> None:
        pool = session.connection
        seen = {}

        async def work(s: Session) -> str:
            seen["state"] = s.state
            seen["connection"] = s.connection
            await s.dispatch(CommandKind.UPDATE, "update t set a = 1")
            return "done"

        assert await session.begin_transaction(work) == "done"
        tx = pool.transactions[0]
        assert seen["connection"] is tx
        assert seen["state"] is SessionState.IN_TRANSACTION
        assert tx.calls == [("update", "update t set a = 1", [])]
        assert pool.calls == []
        assert pool.committed == 1
        assert session.connection is pool
        assert session.state is SessionState.CONNECTED

    @pytest.mark.asyncio
    async def test_failing_work_restores_connection(self, session: Session) -> None:
        pool = session.connection
        boom = ValueError("boom")

        async def work(s: Session) -> None:
            raise boom

        with pytest.raises(ValueError) as exc:
            await session.begin_transaction(work)
        assert exc.value is boom
        assert session.connection is pool
        assert session.state is SessionState.CONNECTED
        assert pool.rolled_back == 1
        assert pool.committed == 0

    @pytest.mark.asyncio
    async def test_failing_sync_work_restores_connection(self, session: Session) -> None:
        pool = session.connection

        def work(s: Session) -> None:
            raise KeyError("sync")

        with pytest.raises(KeyError):
            await session.begin_transaction(work)
        assert session.connection is pool

    @pytest.mark.asyncio
    async def test_query_error_inside_work_propagates_unchanged(self, session: Session) -> None:
        async def work(s: Session) -> None:
            s.connection.fail_with = RuntimeError("deadlock")
            await s.dispatch(CommandKind.UPDATE, "update t set a = 1")

        with pytest.raises(QueryError, match="deadlock"):
            await session.begin_transaction(work)
        assert session.state is SessionState.CONNECTED

    @pytest.mark.asyncio
    async def test_sync_work_value(self, session: Session) -> None:
        assert await session.begin_transaction(lambda s: 7) == 7

    @pytest.mark.asyncio
    async def test_explicit_outcomes(self, session: Session) -> None:
        async def later() -> str:
            return "deferred"

        assert await session.begin_transaction(lambda s: Immediate("now")) == "now"
        assert await session.begin_transaction(lambda s: Deferred(later())) == "deferred"

    @pytest.mark.asyncio
    async def test_without_work(self, session: Session) -> None:
        pool = session.connection
        assert await session.begin_transaction() is None
        assert pool.committed == 1
        assert session.connection is pool

    @pytest.mark.asyncio
    async def test_nested_transaction_rejected(self, session: Session) -> None:
        async def work(s: Session) -> None:
            await s.begin_transaction()

        with pytest.raises(UnsupportedOperationError, match="Nested"):
            await session.begin_transaction(work)
        assert session.state is SessionState.CONNECTED

    @pytest.mark.asyncio
    async def test_requires_connection(self, registry: PoolRegistry) -> None:
        with pytest.raises(DatabaseConnectionError):
            await Session(registry).begin_transaction()

    @pytest.mark.asyncio
    async def test_close_inside_work(self, session: Session) -> None:
        def work(s: Session) -> None:
            s.close()

        await session.begin_transaction(work)
        assert session.connection is None
        assert session.state is SessionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_independent_sessions_do_not_interfere(self, registry: PoolRegistry) -> None:
        a = await Session(registry).connect("main", CONFIG)
        b = await Session(registry).connect("main", CONFIG)

        async def work(s: Session) -> None:
            assert s.in_transaction
            assert not b.in_transaction
            assert b.connection is registry.acquire("main", {})

        await a.begin_transaction(work)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("verb", ["commit", "rollback"])
    async def test_explicit_boundaries_unsupported(self, session: Session, verb: str) -> None:
        pool = session.connection
        with pytest.raises(UnsupportedOperationError):
            await getattr(session, verb)()
        assert pool.calls == []


class TestClose:
    @pytest.mark.asyncio
    async def test_close_twice(self, session: Session, registry: PoolRegistry) -> None:
        session.close()
        assert session.state is SessionState.DISCONNECTED
        assert session.connection is None
        session.close()
        assert session.state is SessionState.DISCONNECTED
        assert session.connection is None
        assert "main" in registry

    @pytest.mark.asyncio
    async def test_release_is_close(self, session: Session) -> None:
        session.release()
        assert session.connection is None

    @pytest.mark.asyncio
    async def test_close_does_not_affect_other_sessions(self, registry: PoolRegistry) -> None:
        a = await Session(registry).connect("main", CONFIG)
        b = await Session(registry).connect("main", CONFIG)
        a.close()
        assert b.connection is not None
        assert not b.connection.closed

    @pytest.mark.asyncio
    async def test_async_context_manager(self, registry: PoolRegistry) -> None:
        async with Session(registry) as s:
            await s.connect("main", CONFIG)
        assert s.state is SessionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_global_close_targets_given_empty_registry(self) -> None:
        pool_registry.acquire("global-entry", {})
        try:
            await Session.global_close(PoolRegistry(factory=FakeConnection))
            assert "global-entry" in pool_registry
        finally:
            await pool_registry.teardown_all()

    @pytest.mark.asyncio
    async def test_global_close(self, registry: PoolRegistry) -> None:
        s = await Session(registry).connect("main", CONFIG)
        handle = s.connection
        await Session.global_close(registry)
        assert len(registry) == 0
        assert handle.closed
        with pytest.raises(QueryError):
            await s.dispatch(CommandKind.SELECT, "select 1 from t")


class TestAsOutcome:
    @pytest.mark.asyncio
    async def test_plain_value(self) -> None:
        outcome = as_outcome(3)
        assert outcome == Immediate(3)
        assert await outcome.resolve() == 3

    @pytest.mark.asyncio
    async def test_awaitable(self) -> None:
        async def value() -> int:
            return 4

        outcome = as_outcome(value())
        assert isinstance(outcome, Deferred)
        assert await outcome.resolve() == 4

    def test_passthrough(self) -> None:
        outcome = Immediate(None)
        assert as_outcome(outcome) is outcome
