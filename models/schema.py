"""
models/schema.py
----------------
Typed data model for the exported schema.

Design Decision:
    ``SchemaColumn`` is a frozen dataclass: columns are built once by the
    schema builder and only ever replaced, never mutated. The schema itself
    is a plain ``dict`` because Python dicts keep insertion order, which is
    the table discovery order the generated script must follow.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterator


class PortableType(str, Enum):
    """Column types written to the generated DDL."""
    BOOLEAN = "BOOLEAN"
    DATETIME = "DATETIME"
    DECIMAL = "DECIMAL"
    DOUBLE = "DOUBLE"
    INTEGER = "INTEGER"
    STRING = "STRING"
    BLOB = "BLOB"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SchemaColumn:
    """
    One column of an exported table.

    Attributes:
        name:            Column name as reported by the source (case kept).
        type:            Portable type used in the generated DDL.
        is_nullable:     Source nullability. Ignored when the column is a
                         primary key.
        is_primary_key:  Set only by the primary-key merge pass.
    """
    name: str
    type: PortableType
    is_nullable: bool = True
    is_primary_key: bool = False

    def render(self) -> str:
        """Return the column fragment used inside ``CREATE TABLE``."""
        fragment = f'"{self.name}" {self.type.value}'
        if self.is_primary_key:
            fragment += " PRIMARY KEY"
        elif self.is_nullable:
            fragment += " NULL"
        else:
            fragment += " NOT NULL"
        return fragment

    def with_primary_key(self, flag: bool = True) -> "SchemaColumn":
        return replace(self, is_primary_key=flag)

    def __str__(self) -> str:
        return self.render()


# {table_name: [SchemaColumn, …]} in discovery order / ordinal order
Schema = dict[str, list[SchemaColumn]]


@dataclass
class ResultTable:
    """
    A tabular result returned by a metadata or data query.

    ``columns`` keeps the column order reported by the driver; each row is a
    dict keyed by those column names.
    """
    columns: list[str] = field(default_factory=list)
    rows: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_rows(cls, rows: list[dict[str, Any]]) -> "ResultTable":
        columns = list(rows[0].keys()) if rows else []
        return cls(columns=columns, rows=list(rows))

    def column_values(self, column: str) -> list[Any]:
        return [row.get(column) for row in self.rows]

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)
