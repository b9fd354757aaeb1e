"""
Structured error types for the ibmdb adapter.

Every failure that leaves the adapter is an :class:`AdapterError` carrying
a category, a structured :class:`ErrorContext` (data-source identity,
command kind, SQL text and bindings) and the chained driver exception.

Manifesto:
    - **Typed taxonomy:** connect failures, query failures and unsupported
      calls are distinct types, never a bare ``Exception``
    - **No retry semantics:** failures are reported, not retried
    - **Rich context:** a ``QueryError`` always knows the SQL that failed
    - **Error chaining:** the original driver exception is kept as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                       AdapterError                          │
        │              (category, context, cause)                     │
        ├─────────────────────────────────────────────────────────────┤
        │  ConfigError        DatabaseError         Unsupported-     │
        │  (CONFIG)           (DATABASE)            OperationError   │
        │                          │                (UNSUPPORTED)    │
        │              DatabaseConnectionError                        │
        │              QueryError (sql, bindings)                     │
        └─────────────────────────────────────────────────────────────┘

Examples:
    >>> err = QueryError("boom", sql="select 1 from t", bindings=[1])
    >>> err.sql
    'select 1 from t'
    >>> err.to_dict()["category"]
    'DATABASE'

Tags:
    error-handling, exception-hierarchy, error-context, ibmdb-adapter
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    DATABASE = "DATABASE"         # Connection pool, statement failures
    CONFIG = "CONFIG"             # Missing driver, invalid settings
    UNSUPPORTED = "UNSUPPORTED"   # Calls the dialect gives no meaning to
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only non-``None`` fields are emitted by :meth:`to_dict`, so an error
    raised at connect time carries just its ``dsn`` while a failed
    dispatch carries ``command``, ``sql`` and ``bindings`` too.

    Attributes:
        dsn: Data-source identity the session was connected with
        command: Command kind that was being dispatched
        sql: SQL text that triggered the failure
        bindings: Parameter values sent with ``sql``
        metadata: Additional key-value pairs
    """

    dsn: str | None = None
    command: str | None = None
    sql: str | None = None
    bindings: Sequence[Any] | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        for key in ["dsn", "command", "sql", "bindings"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = list(value) if key == "bindings" else value
        if self.metadata:
            result.update(self.metadata)
        return result


class AdapterError(Exception):
    """
    Base exception for all adapter errors.

    Subclasses set ``default_category``; callers may override it per
    instance. A ``cause`` is chained onto ``__cause__`` so tracebacks show
    the driver failure underneath.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> AdapterError:
        """
        Add context to this error (fluent API).

        Usage:
            raise DatabaseError("Failed").with_context(dsn="ibmdb://db2@host")
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(AdapterError):
    """Configuration error: missing driver or unusable settings."""

    default_category = ErrorCategory.CONFIG


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(AdapterError):
    """Database operation error."""

    default_category = ErrorCategory.DATABASE


class DatabaseConnectionError(DatabaseError):
    """Pool or connector creation failed, or the session is not connected.

    Fatal to the connect attempt; never retried.
    """


class QueryError(DatabaseError):
    """A dispatched statement failed.

    Carries the SQL text and bindings that triggered the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        sql: str,
        bindings: Sequence[Any] | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        context = context or ErrorContext()
        context.sql = sql
        context.bindings = bindings
        super().__init__(message, context=context, cause=cause)

    @property
    def sql(self) -> str:
        return self.context.sql or ""

    @property
    def bindings(self) -> Sequence[Any] | None:
        return self.context.bindings


# =============================================================================
# UNSUPPORTED OPERATIONS
# =============================================================================


class UnsupportedOperationError(AdapterError):
    """The dialect gives this call no meaning (explicit commit/rollback,
    nested transactions). Never attempted against the connector."""

    default_category = ErrorCategory.UNSUPPORTED


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "AdapterError",
    "ConfigError",
    "DatabaseError",
    "DatabaseConnectionError",
    "QueryError",
    "UnsupportedOperationError",
]
