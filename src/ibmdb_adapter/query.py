"""SELECT translation with offset pagination emulation.

The store only understands a single-sided ``fetch first n rows only``.
A query's row limit is therefore one of three explicit variants:

- ``NO_LIMIT``: no limiter at all
- :class:`Count`: native ``fetch first n rows only`` (a zero count adds no limiter)
- :class:`OffsetCount`: emulated with a ranking window::

      select * from (
          select <selects>, row_number() over(order by ...) rn from ...
      ) tmp where tmp.rn > offset and tmp.rn <= offset + n

  The ``order by`` clause is consumed by the window function and is not
  repeated as a trailing clause of the inner statement.

Clause fragments (selects, join, where, order by, group by, having,
union) are caller-rendered text and pass through verbatim.

``union`` is appended after the pagination wrapper, not inside the
inner statement, so a paginated union windows only its first branch.
This mirrors the established adapter behaviour.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from ibmdb_adapter.dialect import IbmdbDialect
from ibmdb_adapter.dialect import dialect as default_dialect
from ibmdb_adapter.logging import get_logger

logger = get_logger(__name__)

_COUNT_DISTINCT = re.compile(r"count\(distinct\s\S+\)", re.IGNORECASE)


class _NoLimit(Enum):
    NO_LIMIT = "NO_LIMIT"

    def __repr__(self) -> str:
        return "NO_LIMIT"


NO_LIMIT = _NoLimit.NO_LIMIT


@dataclass(frozen=True)
class Count:
    """Return at most ``count`` rows."""

    count: int


@dataclass(frozen=True)
class OffsetCount:
    """Skip ``offset`` rows, then return at most ``count`` rows."""

    offset: int
    count: int


Limit = _NoLimit | Count | OffsetCount


def limit(length: int, offset: int | None = None) -> Count | OffsetCount:
    """Build the limit variant for ``length`` rows after ``offset``.

    A zero or missing offset needs no emulation:

    >>> limit(5)
    Count(count=5)
    >>> limit(5, 0)
    Count(count=5)
    >>> limit(5, 10)
    OffsetCount(offset=10, count=5)
    """
    if not offset:
        return Count(length)
    return OffsetCount(offset, length)


@dataclass
class QueryState:
    """Pre-rendered clauses of one SELECT against ``table``.

    ``order_by``, ``group_by`` and friends hold only the clause body
    (``"id desc"``, not ``"order by id desc"``).
    """

    table: str
    selects: str = "*"
    distinct: bool = False
    join: str = ""
    where: str = ""
    order_by: str = ""
    group_by: str = ""
    having: str = ""
    union: str = ""
    limit: Limit = NO_LIMIT


def is_count_distinct(selects: str) -> bool:
    """True when the select list already is an aggregate ``count(distinct x)``."""
    return _COUNT_DISTINCT.search(selects) is not None


def translate_select(state: QueryState, dialect: IbmdbDialect | None = None) -> str:
    """Render ``state`` as a single SELECT statement."""
    d = dialect or default_dialect
    paginated = isinstance(state.limit, OffsetCount)

    distinct = "distinct " if state.distinct and not is_count_distinct(state.selects) else ""
    where = f" where {state.where}" if state.where else ""
    order_by = f"order by {state.order_by}" if state.order_by else ""
    group_by = f" group by {state.group_by}" if state.group_by else ""
    having = f" having {state.having}" if state.having else ""
    union = f" union {state.union}" if state.union else ""

    sql = "select " + distinct + state.selects
    if paginated:
        sql += ", " + d.row_number(order_by)

    source = state.join or d.quote_identifier(state.table)
    sql += " from " + source + where

    if not paginated and order_by:
        sql += " " + order_by

    sql += group_by + having

    match state.limit:
        case Count(count=count) if count:
            sql += " " + d.fetch_first(count)
        case OffsetCount(offset=offset, count=count):
            sql = d.offset_window(sql, offset, count)

    sql += union
    logger.debug("select_translated", table=state.table, paginated=paginated)
    return sql


__all__ = [
    "NO_LIMIT",
    "Count",
    "OffsetCount",
    "Limit",
    "limit",
    "QueryState",
    "is_count_distinct",
    "translate_select",
]
