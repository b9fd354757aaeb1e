"""Connection configuration, command kinds and dispatch results."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any


class CommandKind(str, Enum):
    """Statement kinds; each selects a pooled-connection verb."""

    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class SessionState(str, Enum):
    """Lifecycle of a :class:`~ibmdb_adapter.session.Session`."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    IN_TRANSACTION = "in_transaction"


@dataclass(frozen=True)
class ConnectionConfig:
    """
    Generic connection configuration, passed once at connect time.

    The second group of fields are generic options other backends
    understand; the dialect's connector does not, and the config
    translator drops them. ``extra`` holds caller extension fields that
    are copied through to the native option set unchanged.
    """

    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    timeout: int | str | None = None

    # Not understood by the connector
    charset: str | None = None
    connection_string: str | None = None
    max: int | None = None
    protocol: str | None = None
    socket_path: str | None = None
    ssl: bool | None = None
    type: str | None = None

    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    def data_source_id(self) -> str:
        """Default data-source identity for this configuration.

        >>> ConnectionConfig(host="as400", port=446, user="db2", database="SAMPLE").data_source_id()
        'ibmdb://db2@as400:446/SAMPLE'
        """
        user = f"{self.user}@" if self.user else ""
        port = f":{self.port}" if self.port else ""
        return f"ibmdb://{user}{self.host or ''}{port}/{self.database or ''}"


@dataclass(frozen=True)
class QueryResult:
    """
    Normalized outcome of a dispatched command.

    Exactly one payload field is populated, chosen by ``command``:
    ``insert_id`` for inserts, ``affected_rows`` for updates and deletes,
    ``data`` for selects.
    """

    command: CommandKind | str
    insert_id: Any = None
    affected_rows: int | None = None
    data: list[dict[str, Any]] | None = None


__all__ = [
    "CommandKind",
    "SessionState",
    "ConnectionConfig",
    "QueryResult",
]
