"""Abstract table schema consumed by the DDL builder.

A :class:`TableSchema` is a name plus an *ordered* sequence of
:class:`FieldDefinition`; column order in the generated DDL is the order
fields were declared in.

``FieldDefinition.default`` has three distinct states:

- :data:`UNSET` (the default) renders no default clause
- ``None`` renders ``default null``
- any other value renders ``default <literal>``
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class _Unset(Enum):
    UNSET = "UNSET"

    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset.UNSET
"""Marker for a field default that was never set."""


@dataclass(frozen=True)
class AutoIncrement:
    """Identity generation parameters for a primary key column."""

    start: int = 1
    step: int = 1


@dataclass(frozen=True)
class ForeignKey:
    """Reference from a column to ``table(field)``.

    A foreign key without ``table`` is ignored by the DDL builder.
    """

    table: str | None = None
    field: str | None = None
    on_delete: str = "set null"
    on_update: str = "no action"


@dataclass(frozen=True)
class FieldDefinition:
    """One column of a table schema."""

    name: str
    type: str = "varchar"
    length: int | tuple[int, int] | None = None
    primary: bool = False
    auto_increment: AutoIncrement | None = None
    default: Any = UNSET
    not_null: bool = False
    unsigned: bool = False
    unique: bool = False
    comment: str | None = None
    foreign_key: ForeignKey = field(default_factory=ForeignKey)


@dataclass
class TableSchema:
    """Table name plus its fields in declaration order."""

    name: str
    fields: list[FieldDefinition] = field(default_factory=list)

    def add_field(self, name: str, type: str = "varchar", **options: Any) -> FieldDefinition:
        """Append a field and return it."""
        definition = FieldDefinition(name=name, type=type, **options)
        self.fields.append(definition)
        return definition


__all__ = [
    "UNSET",
    "AutoIncrement",
    "ForeignKey",
    "FieldDefinition",
    "TableSchema",
]
