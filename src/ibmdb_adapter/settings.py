"""Environment-driven settings for the ibmdb adapter.

``AdapterSettings`` reads ``IBMDB_*`` environment variables (and a
``.env`` file) and turns them into a :class:`ConnectionConfig` plus the
logging options.

Examples:
    >>> import os
    >>> os.environ["IBMDB_HOST"] = "as400"
    >>> os.environ["IBMDB_DATABASE"] = "SAMPLE"
    >>> settings = AdapterSettings()
    >>> settings.connection_config().host
    'as400'

Tags:
    settings, configuration, pydantic, environment, ibmdb-adapter
"""

from __future__ import annotations

from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ibmdb_adapter.logging import configure_logging
from ibmdb_adapter.types import ConnectionConfig


class AdapterSettings(BaseSettings):
    """Connection and logging settings.

    Fields
    ──────
    host, port, user, password, database, timeout : generic connection config
    dsn          : explicit data-source identity (default: derived)
    extra        : connector extension fields (JSON object in the env)
    log_level    : structlog log level
    json_logs    : force JSON (True) / console (False) output; None = auto
    """

    model_config = SettingsConfigDict(
        env_prefix="IBMDB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Connection ───────────────────────────────────────────────
    host: str = "localhost"
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    timeout: int | None = None
    dsn: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    def connection_config(self) -> ConnectionConfig:
        return ConnectionConfig(
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            database=self.database,
            timeout=self.timeout,
            extra=self.extra,
        )

    def data_source_id(self) -> str:
        return self.dsn or self.connection_config().data_source_id()

    def configure_logging(self) -> None:
        configure_logging(level=self.log_level, json_format=self.json_logs)


__all__ = [
    "AdapterSettings",
]
