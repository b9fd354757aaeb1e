"""Generic connection config -> the connector's native option set.

Pure and deterministic: no I/O, no mutation of the caller's config.

Translation rules:

- ``host`` and ``port`` combine into ``"host:port"`` when both are set
- ``database`` becomes :data:`DATABASE_NAME`
- ``timeout`` becomes :data:`QUERY_TIMEOUT`
- ``user`` and ``password`` keep their names
- caller extension fields (``ConnectionConfig.extra``) are copied through
- generic options the connector does not understand (charset,
  connection string, pool max, protocol, socket path, ssl, type) are
  dropped, even when supplied as extension fields

Unset (``None``) generic values are omitted from the result.
"""

from __future__ import annotations

from typing import Any

from ibmdb_adapter.types import ConnectionConfig

DATABASE_NAME = "database name"
QUERY_TIMEOUT = "query timeout mechanism"

UNSUPPORTED_OPTIONS = frozenset({
    "charset",
    "connection_string",
    "connectionString",
    "database",
    "max",
    "port",
    "protocol",
    "socket_path",
    "socketPath",
    "ssl",
    "timeout",
    "type",
})


def translate_config(config: ConnectionConfig) -> dict[str, Any]:
    """Map ``config`` to the connector's native options."""
    host = config.host
    if host and config.port:
        host = f"{host}:{config.port}"

    native: dict[str, Any] = {
        key: value
        for key, value in config.extra.items()
        if key not in UNSUPPORTED_OPTIONS
    }
    generic = {
        "host": host,
        "user": config.user,
        "password": config.password,
        DATABASE_NAME: config.database,
        QUERY_TIMEOUT: config.timeout,
    }
    native.update({key: value for key, value in generic.items() if value is not None})
    return native


__all__ = [
    "DATABASE_NAME",
    "QUERY_TIMEOUT",
    "UNSUPPORTED_OPTIONS",
    "translate_config",
]
