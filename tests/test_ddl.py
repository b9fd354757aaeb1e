"""Tests for ``ibmdb_adapter.ddl``: CREATE TABLE generation."""

from __future__ import annotations

import pytest

from ibmdb_adapter.ddl import build_create_table
from ibmdb_adapter.schema import (
    UNSET,
    AutoIncrement,
    FieldDefinition,
    ForeignKey,
    TableSchema,
)


@pytest.fixture
def users() -> TableSchema:
    schema = TableSchema("users")
    schema.add_field("id", "int", primary=True, auto_increment=AutoIncrement(10001, 1))
    schema.add_field("name", "varchar", length=32, not_null=True)
    schema.add_field(
        "group_id",
        "int",
        foreign_key=ForeignKey("groups", "id", on_delete="cascade", on_update="cascade"),
    )
    return schema


def _column(sql: str, name: str) -> str:
    for line in sql.split("\n"):
        if line.strip().startswith(f'"{name}"'):
            return line.strip().rstrip(",")
    raise AssertionError(f"column {name} not in {sql!r}")


class TestFullStatement:
    def test_exact_text(self, users: TableSchema) -> None:
        assert build_create_table(users) == (
            'create table "users" (\n'
            '\t"id" int generated always as identity (start with 10001, increment by 1),\n'
            '\t"name" varchar(32) not null,\n'
            '\t"group_id" int,\n'
            '\tprimary key("id"),\n'
            '\tforeign key ("group_id") references "groups" ("id") on delete cascade on update cascade\n'
            ")"
        )

    def test_clause_counts_and_order(self, users: TableSchema) -> None:
        sql = build_create_table(users)
        assert sql.count("primary key(") == 1
        assert sql.count("generated always as identity") == 1
        assert sql.count("foreign key (") == 1
        assert (
            sql.index("generated always as identity")
            < sql.index("primary key(")
            < sql.index("foreign key (")
        )

    def test_columns_keep_declaration_order(self) -> None:
        schema = TableSchema("t")
        for name in ["zeta", "alpha", "mid"]:
            schema.add_field(name, "int")
        sql = build_create_table(schema)
        assert sql.index('"zeta"') < sql.index('"alpha"') < sql.index('"mid"')

    def test_no_primary_no_foreign(self) -> None:
        schema = TableSchema("plain", [FieldDefinition("a", "int")])
        assert build_create_table(schema) == 'create table "plain" (\n\t"a" int\n)'


class TestIdentityCoercion:
    def test_non_integer_type_forced_to_int(self) -> None:
        schema = TableSchema("t")
        schema.add_field("id", "varchar", length=10, primary=True, auto_increment=AutoIncrement())
        col = _column(build_create_table(schema), "id")
        assert col.startswith('"id" int(10) ')
        assert col.endswith("generated always as identity (start with 1, increment by 1)")

    @pytest.mark.parametrize("declared", ["int", "INTEGER", "Integer"])
    def test_integer_aliases_kept(self, declared: str) -> None:
        schema = TableSchema("t")
        schema.add_field("id", declared, primary=True, auto_increment=AutoIncrement(5, 2))
        col = _column(build_create_table(schema), "id")
        assert col == f'"id" {declared} generated always as identity (start with 5, increment by 2)'

    def test_auto_increment_without_primary_is_ignored(self) -> None:
        schema = TableSchema("t")
        schema.add_field("n", "varchar", auto_increment=AutoIncrement())
        sql = build_create_table(schema)
        assert "identity" not in sql
        assert '"n" varchar' in sql

    def test_schema_not_mutated(self) -> None:
        schema = TableSchema("t")
        schema.add_field("id", "varchar", length=8, primary=True, auto_increment=AutoIncrement())
        build_create_table(schema)
        build_create_table(schema)
        assert schema.fields[0].type == "varchar"


class TestLength:
    def test_pair(self) -> None:
        schema = TableSchema("t", [FieldDefinition("price", "decimal", length=(10, 2))])
        assert _column(build_create_table(schema), "price") == '"price" decimal(10,2)'

    def test_scalar(self) -> None:
        schema = TableSchema("t", [FieldDefinition("code", "char", length=3)])
        assert _column(build_create_table(schema), "code") == '"code" char(3)'

    def test_absent(self) -> None:
        schema = TableSchema("t", [FieldDefinition("body", "clob")])
        assert _column(build_create_table(schema), "body") == '"body" clob'


class TestDefault:
    def test_three_states_render_differently(self) -> None:
        schema = TableSchema("t")
        schema.add_field("a", "int", default=None)
        schema.add_field("b", "int")
        schema.add_field("c", "int", default=0)
        sql = build_create_table(schema)
        assert _column(sql, "a") == '"a" int default null'
        assert _column(sql, "b") == '"b" int'
        assert _column(sql, "c") == '"c" int default 0'

    def test_unset_is_the_default(self) -> None:
        assert FieldDefinition("x").default is UNSET

    def test_string_default_is_quoted(self) -> None:
        schema = TableSchema("t", [FieldDefinition("s", "varchar", length=8, default="it's")])
        assert _column(build_create_table(schema), "s") == "\"s\" varchar(8) default 'it''s'"


class TestFlags:
    def test_fixed_order(self) -> None:
        schema = TableSchema("t")
        schema.add_field(
            "n", "int", not_null=True, unsigned=True, unique=True, comment="count", default=1
        )
        assert (
            _column(build_create_table(schema), "n")
            == "\"n\" int default 1 not null unsigned unique comment 'count'"
        )


class TestPrimaryKey:
    def test_last_primary_wins(self) -> None:
        schema = TableSchema("t")
        schema.add_field("a", "int", primary=True)
        schema.add_field("b", "int", primary=True)
        sql = build_create_table(schema)
        assert sql.count("primary key(") == 1
        assert 'primary key("b")' in sql


class TestForeignKey:
    def test_defaults(self) -> None:
        schema = TableSchema("t", [FieldDefinition("g", "int", foreign_key=ForeignKey("g", "id"))])
        assert (
            'foreign key ("g") references "g" ("id") on delete set null on update no action'
            in build_create_table(schema)
        )

    def test_without_table_is_skipped(self) -> None:
        schema = TableSchema("t", [FieldDefinition("g", "int", foreign_key=ForeignKey(field="id"))])
        assert "foreign key" not in build_create_table(schema)

    def test_multiple_foreign_keys_follow_primary(self) -> None:
        schema = TableSchema("t")
        schema.add_field("a", "int", foreign_key=ForeignKey("x", "id"))
        schema.add_field("id", "int", primary=True)
        schema.add_field("b", "int", foreign_key=ForeignKey("y", "id"))
        sql = build_create_table(schema)
        lines = sql.split("\n")
        assert lines[-4] == '\tprimary key("id"),'
        assert lines[-3].startswith('\tforeign key ("a") references "x"')
        assert lines[-2].startswith('\tforeign key ("b") references "y"')
        assert lines[-1] == ")"
