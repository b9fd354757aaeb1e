"""ibmdb-adapter -- dialect adapter for a legacy midrange relational store.

Manifesto:
    The store's SQL grammar has no OFFSET/LIMIT and exposes transactions
    only as a connector-managed scope. This package turns an abstract
    schema or query state into dialect-correct SQL and runs it over a
    pool shared per data-source identity.

Architecture::

    TableSchema ──► ddl.build_create_table ──┐
                                             ├─► Session.dispatch ─► PooledConnection
    QueryState  ──► query.translate_select ──┘        │
                                                     │ connect()
    ConnectionConfig ──► config.translate_config ──► PoolRegistry.acquire

Modules
-------
errors      AdapterError taxonomy (connection, query, unsupported)
logging     structlog configuration
settings    IBMDB_* environment settings
types       ConnectionConfig, CommandKind, QueryResult, SessionState
dialect     Quoting and SQL fragments
schema      TableSchema / FieldDefinition model
ddl         CREATE TABLE builder
query       QueryState, limit variants, SELECT translator
config      Generic config -> native connector options
pool        PooledConnection protocol + PoolRegistry
connector   Default ibm-db pooled connector
session     Session with transaction connection swap

Tags:
    ibmdb-adapter, dialect, pagination, connection-pool, transaction
"""

from ibmdb_adapter.config import translate_config
from ibmdb_adapter.ddl import build_create_table
from ibmdb_adapter.dialect import IbmdbDialect
from ibmdb_adapter.errors import (
    AdapterError,
    ConfigError,
    DatabaseConnectionError,
    DatabaseError,
    QueryError,
    UnsupportedOperationError,
)
from ibmdb_adapter.pool import PooledConnection, PoolRegistry, pool_registry
from ibmdb_adapter.query import NO_LIMIT, Count, OffsetCount, QueryState, limit, translate_select
from ibmdb_adapter.schema import UNSET, AutoIncrement, FieldDefinition, ForeignKey, TableSchema
from ibmdb_adapter.session import Deferred, Immediate, Session
from ibmdb_adapter.types import CommandKind, ConnectionConfig, QueryResult, SessionState

__version__ = "0.1.0"

__all__ = [
    # Types
    "CommandKind",
    "ConnectionConfig",
    "QueryResult",
    "SessionState",
    # Schema / query model
    "UNSET",
    "AutoIncrement",
    "FieldDefinition",
    "ForeignKey",
    "TableSchema",
    "NO_LIMIT",
    "Count",
    "OffsetCount",
    "QueryState",
    "limit",
    # SQL generation
    "IbmdbDialect",
    "build_create_table",
    "translate_select",
    "translate_config",
    # Connections
    "PooledConnection",
    "PoolRegistry",
    "pool_registry",
    "Session",
    "Immediate",
    "Deferred",
    # Errors
    "AdapterError",
    "ConfigError",
    "DatabaseError",
    "DatabaseConnectionError",
    "QueryError",
    "UnsupportedOperationError",
]
