"""SQL dialect of the midrange store.

Provides the quoting rules and the small SQL fragments the DDL builder
and the query translator assemble statements from. The store uses
``"`` for identifiers, ``'`` for string literals and qmark (``?``)
placeholders.

The grammar has no OFFSET/LIMIT. The only row limiter is the single-sided
``fetch first n rows only``; offset windows are emulated with
``row_number() over(...)`` (see :mod:`ibmdb_adapter.query`).

Examples:
    >>> from ibmdb_adapter.dialect import IbmdbDialect
    >>> d = IbmdbDialect()
    >>> d.quote_identifier("app.users")
    '"app"."users"'
    >>> d.quote_literal("O'Brien")
    "'O''Brien'"
    >>> d.fetch_first(5)
    'fetch first 5 rows only'

Tags:
    dialect, sql, quoting, pagination, ibmdb-adapter
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any


class IbmdbDialect:
    """Midrange store dialect: ``"`` identifiers, ``?`` placeholders."""

    identifier_quote = '"'
    literal_quote = "'"

    # Types accepted as-is for identity (auto-increment) columns
    integer_types: frozenset[str] = frozenset({"int", "integer"})
    integer_type = "int"

    @property
    def name(self) -> str:
        return "ibmdb"

    # -- Placeholders ------------------------------------------------------

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    # -- Quoting -----------------------------------------------------------

    def quote_identifier(self, identifier: str) -> str:
        """Quote a (possibly dotted) identifier; ``*`` parts stay bare."""
        q = self.identifier_quote
        parts = []
        for part in identifier.split("."):
            part = part.strip()
            if part == "*" or (len(part) > 1 and part[0] == q and part[-1] == q):
                parts.append(part)
            else:
                parts.append(f"{q}{part}{q}")
        return ".".join(parts)

    def quote_literal(self, value: Any) -> str:
        """Render ``value`` as an SQL literal."""
        if value is None:
            return "null"
        if isinstance(value, bool):
            return self.boolean_true() if value else self.boolean_false()
        if isinstance(value, (int, float, Decimal)):
            return str(value)
        q = self.literal_quote
        return q + str(value).replace(q, q + q) + q

    def boolean_true(self) -> str:
        return "1"

    def boolean_false(self) -> str:
        return "0"

    # -- DDL fragments -----------------------------------------------------

    def is_integer_type(self, column_type: str) -> bool:
        return column_type.lower() in self.integer_types

    def identity_clause(self, start: int, step: int) -> str:
        return f"generated always as identity (start with {start}, increment by {step})"

    # -- Row limiting ------------------------------------------------------

    def fetch_first(self, count: int) -> str:
        return f"fetch first {count} rows only"

    def row_number(self, order_by: str) -> str:
        """Ranking column used to emulate offsets; ``order_by`` is the
        full ``order by ...`` clause or empty."""
        return f"row_number() over({order_by}) rn"

    def offset_window(self, inner_sql: str, offset: int, count: int) -> str:
        return (
            f"select * from ({inner_sql}) tmp "
            f"where tmp.rn > {offset} and tmp.rn <= {offset + count}"
        )


dialect = IbmdbDialect()


__all__ = [
    "IbmdbDialect",
    "dialect",
]
