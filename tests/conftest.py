"""
tests/conftest.py
-----------------
Shared fixtures: a mock metadata provider / data source standing in for
MySQL, answering ``get_schema`` and ``query_rows`` from plain dicts.
"""
from __future__ import annotations

from typing import Any, Callable
from unittest.mock import MagicMock

import pytest

from models.schema import ResultTable


def column_rows(table: str, *cols: tuple[str, int, bool, int]) -> ResultTable:
    """Build a ``Columns`` collection from ``(name, type_code, nullable, ordinal)``."""
    return ResultTable.from_rows([
        {
            "TABLE_NAME": table,
            "COLUMN_NAME": name,
            "ORDINAL_POSITION": ordinal,
            "IS_NULLABLE": nullable,
            "DATA_TYPE": code,
        }
        for name, code, nullable, ordinal in cols
    ])


def index_rows(table: str, *cols: tuple[str, int]) -> ResultTable:
    """Build a primary-key ``Indexes`` collection from ``(column, ordinal)``."""
    return ResultTable.from_rows([
        {
            "TABLE_NAME": table,
            "INDEX_NAME": "PRIMARY",
            "PRIMARY_KEY": True,
            "COLUMN_NAME": name,
            "ORDINAL_POSITION": ordinal,
        }
        for name, ordinal in cols
    ])


def _fake_provider(
    tables: list[str] | None,
    columns: dict[str, ResultTable | None],
    indexes: dict[str, ResultTable | None],
    rows: dict[str, list[dict[str, Any]] | None] | None = None,
    views: ResultTable | None = None,
) -> MagicMock:
    provider = MagicMock()

    def get_schema(collection: str, restrictions=None):
        if collection == "":
            return ResultTable.from_rows([
                {"CollectionName": "Tables", "NumberOfRestrictions": 4},
            ])
        if collection == "Tables":
            if tables is None:
                return None
            return ResultTable.from_rows(
                [{"TABLE_NAME": t, "TABLE_TYPE": "BASE TABLE"} for t in tables]
            )
        if collection == "Columns":
            return columns.get(restrictions[2])
        if collection == "Indexes":
            return indexes.get(restrictions[4])
        if collection == "Views":
            return views if views is not None else ResultTable(columns=["TABLE_NAME"])
        return None

    def query_rows(sql: str):
        for name, table_rows in (rows or {}).items():
            if f"`{name}`" in sql:
                return None if table_rows is None else ResultTable.from_rows(table_rows)
        return ResultTable()

    provider.get_schema.side_effect = get_schema
    provider.query_rows.side_effect = query_rows
    return provider


@pytest.fixture
def make_provider() -> Callable[..., MagicMock]:
    return _fake_provider


@pytest.fixture
def shop_provider() -> MagicMock:
    """Two tables: ``Customers`` (integer key) and ``Orders``."""
    return _fake_provider(
        tables=["Customers", "Orders"],
        columns={
            "Customers": column_rows(
                "Customers",
                ("CustomerID", 3, False, 1),
                ("Name", 202, True, 2),
                ("Joined", 135, True, 3),
            ),
            "Orders": column_rows(
                "Orders",
                ("Total", 131, True, 2),
                ("OrderID", 3, False, 1),
            ),
        },
        indexes={
            "Customers": index_rows("Customers", ("CustomerID", 1)),
            "Orders": index_rows("Orders", ("OrderID", 1)),
        },
        rows={
            "Customers": [
                {"CustomerID": 1, "Name": "Ada", "Joined": None},
            ],
            "Orders": [
                {"OrderID": 10, "Total": None},
                {"OrderID": 11, "Total": "12.50"},
            ],
        },
    )
