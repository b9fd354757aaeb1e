"""CREATE TABLE generation.

Turns a :class:`~ibmdb_adapter.schema.TableSchema` into one statement::

    create table "users" (
    	"id" int generated always as identity (start with 10001, increment by 1),
    	"name" varchar(32) not null,
    	primary key("id"),
    	foreign key ("group_id") references "groups" ("id") on delete ... on update ...
    )

Columns keep declaration order. Per field the steps are fixed: identity
coercion, length, default, flags (not null, unsigned, unique, comment),
identity clause, then a side-listed foreign key clause. The primary key
clause names the *last* primary field; schemas with several primaries are
not validated.

Input shape is not validated either: a foreign key missing its target
field produces wrong SQL text rather than an error.
"""

from __future__ import annotations

from ibmdb_adapter.dialect import IbmdbDialect
from ibmdb_adapter.dialect import dialect as default_dialect
from ibmdb_adapter.logging import get_logger
from ibmdb_adapter.schema import UNSET, FieldDefinition, TableSchema

logger = get_logger(__name__)


def _column_type(definition: FieldDefinition, identity: bool, d: IbmdbDialect) -> str:
    column_type = definition.type
    if identity and not d.is_integer_type(column_type):
        column_type = d.integer_type

    length = definition.length
    if isinstance(length, (tuple, list)):
        column_type += "(" + ",".join(str(n) for n in length) + ")"
    elif length:
        column_type += f"({length})"
    return column_type


def _column(definition: FieldDefinition, d: IbmdbDialect) -> str:
    identity = definition.primary and definition.auto_increment is not None

    column = d.quote_identifier(definition.name) + " " + _column_type(definition, identity, d)

    if definition.default is None:
        column += " default null"
    elif definition.default is not UNSET:
        column += " default " + d.quote_literal(definition.default)

    if definition.not_null:
        column += " not null"
    if definition.unsigned:
        column += " unsigned"
    if definition.unique:
        column += " unique"
    if definition.comment:
        column += " comment " + d.quote_literal(definition.comment)

    if identity:
        auto = definition.auto_increment
        column += " " + d.identity_clause(auto.start, auto.step)

    return column


def _foreign_key(definition: FieldDefinition, d: IbmdbDialect) -> str:
    fk = definition.foreign_key
    return (
        f"foreign key ({d.quote_identifier(definition.name)})"
        f" references {d.quote_identifier(fk.table)}"
        f" ({d.quote_identifier(fk.field or '')})"
        f" on delete {fk.on_delete}"
        f" on update {fk.on_update}"
    )


def build_create_table(schema: TableSchema, dialect: IbmdbDialect | None = None) -> str:
    """Build the CREATE TABLE statement for ``schema``."""
    d = dialect or default_dialect
    columns: list[str] = []
    foreigns: list[str] = []
    primary: str | None = None

    for definition in schema.fields:
        if definition.primary:
            primary = definition.name
        columns.append(_column(definition, d))
        if definition.foreign_key.table:
            foreigns.append(_foreign_key(definition, d))

    sql = f"create table {d.quote_identifier(schema.name)} (\n\t" + ",\n\t".join(columns)

    if primary:
        sql += f",\n\tprimary key({d.quote_identifier(primary)})"

    if foreigns:
        sql += ",\n\t" + ",\n\t".join(foreigns)

    sql += "\n)"
    logger.debug("ddl_built", table=schema.name, columns=len(columns))
    return sql


__all__ = [
    "build_create_table",
]
