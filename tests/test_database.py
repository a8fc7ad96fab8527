"""
tests/test_database.py
----------------------
Unit tests for core/database.py with ``mysql.connector.connect`` mocked.
Run with: python -m pytest tests/
"""
from __future__ import annotations

from unittest.mock import MagicMock, patch

import mysql.connector
import pytest

from core.database import ConnectionLostError, DatabaseError, DatabaseManager


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def _dict_cursor(rows: list[dict], error: Exception | None = None) -> MagicMock:
    cursor = MagicMock()
    if error is not None:
        cursor.execute.side_effect = error
    cursor.fetchall.return_value = rows
    cursor.column_names = tuple(rows[0].keys()) if rows else ()
    return cursor


@pytest.fixture
def conn() -> MagicMock:
    connection = MagicMock()
    connection.is_connected.return_value = True
    return connection


@pytest.fixture
def dm(conn: MagicMock) -> DatabaseManager:
    with patch("core.database.mysql.connector.connect", return_value=conn):
        manager = DatabaseManager(
            host="db", port=3306, user="u", password="p", database="finance"
        )
        manager.connect()
    return manager


def _last_query(cursor: MagicMock) -> tuple[str, tuple]:
    sql, params = cursor.execute.call_args[0]
    return sql, params


# ---------------------------------------------------------------------------
# Connection lifecycle
# ---------------------------------------------------------------------------

class TestConnect:
    def test_database_passed_to_driver(self, conn: MagicMock) -> None:
        with patch("core.database.mysql.connector.connect", return_value=conn) as connect:
            DatabaseManager("h", 3306, "u", "p", database="finance").connect()
        assert connect.call_args.kwargs["database"] == "finance"

    def test_retries_then_fails(self) -> None:
        err = mysql.connector.Error("refused")
        with patch("core.database.mysql.connector.connect", side_effect=err) as connect, \
                patch("core.database.time.sleep") as sleep:
            manager = DatabaseManager("h", 3306, "u", "p", max_retries=3, retry_delay=0.1)
            with pytest.raises(DatabaseError):
                manager.connect()
        assert connect.call_count == 3
        assert sleep.call_count == 2

    def test_context_manager_closes(self, conn: MagicMock) -> None:
        with patch("core.database.mysql.connector.connect", return_value=conn):
            with DatabaseManager("h", 3306, "u", "p") as manager:
                assert manager.is_connected
        conn.close.assert_called_once()

    def test_not_connected(self) -> None:
        manager = DatabaseManager("h", 3306, "u", "p")
        with pytest.raises(ConnectionLostError):
            manager._query_table("SELECT 1")

    def test_close_is_idempotent(self, dm: DatabaseManager, conn: MagicMock) -> None:
        dm.close()
        dm.close()
        conn.close.assert_called_once()
        assert not dm.is_connected


# ---------------------------------------------------------------------------
# Metadata collections
# ---------------------------------------------------------------------------

class TestGetSchema:
    def test_collection_list(self, dm: DatabaseManager) -> None:
        table = dm.get_schema("")
        names = table.column_values("CollectionName")
        assert {"Tables", "Columns", "Indexes", "Views"} <= set(names)

    def test_tables_base_table_filter(self, dm: DatabaseManager, conn: MagicMock) -> None:
        cursor = _dict_cursor([{"TABLE_NAME": "Accounts", "TABLE_TYPE": "BASE TABLE"}])
        conn.cursor.return_value = cursor
        table = dm.get_schema("Tables", [None, None, None, "Table"])
        sql, params = _last_query(cursor)
        assert "information_schema.TABLES" in sql
        assert params == ("finance", "BASE TABLE")
        assert table.column_values("TABLE_NAME") == ["Accounts"]

    def test_columns_report_type_codes(self, dm: DatabaseManager, conn: MagicMock) -> None:
        cursor = _dict_cursor([
            {
                "TABLE_NAME": "Accounts", "COLUMN_NAME": "ID", "ORDINAL_POSITION": 1,
                "COLUMN_DEFAULT": None, "IS_NULLABLE": "NO", "TYPE_NAME": "int",
                "COLUMN_TYPE": "int(11)", "CHARACTER_MAXIMUM_LENGTH": None,
                "NUMERIC_PRECISION": 10, "NUMERIC_SCALE": 0,
            },
            {
                "TABLE_NAME": "Accounts", "COLUMN_NAME": "Name", "ORDINAL_POSITION": 2,
                "COLUMN_DEFAULT": None, "IS_NULLABLE": b"YES", "TYPE_NAME": b"varchar",
                "COLUMN_TYPE": b"varchar(50)", "CHARACTER_MAXIMUM_LENGTH": 50,
                "NUMERIC_PRECISION": None, "NUMERIC_SCALE": None,
            },
        ])
        conn.cursor.return_value = cursor
        table = dm.get_schema("Columns", [None, None, "Accounts", None])
        sql, params = _last_query(cursor)
        assert params == ("finance", "Accounts")
        assert table.column_values("DATA_TYPE") == [3, 202]
        assert table.column_values("IS_NULLABLE") == [False, True]
        assert table.column_values("TYPE_NAME") == ["int", "varchar"]

    def test_indexes_primary_key_restriction(self, dm: DatabaseManager, conn: MagicMock) -> None:
        cursor = _dict_cursor([
            {
                "TABLE_NAME": "Accounts", "INDEX_NAME": "PRIMARY", "COLUMN_NAME": "ID",
                "ORDINAL_POSITION": 1, "NON_UNIQUE": 0,
            },
        ])
        conn.cursor.return_value = cursor
        table = dm.get_schema("Indexes", [None, None, "PrimaryKey", None, "Accounts"])
        sql, params = _last_query(cursor)
        assert "information_schema.STATISTICS" in sql
        assert params == ("finance", "PRIMARY", "Accounts")
        row = table.rows[0]
        assert row["PRIMARY_KEY"] is True
        assert row["UNIQUE"] is True
        assert row["COLUMN_NAME"] == "ID"

    def test_views(self, dm: DatabaseManager, conn: MagicMock) -> None:
        cursor = _dict_cursor([{"TABLE_NAME": "v_totals", "VIEW_DEFINITION": "select 1"}])
        conn.cursor.return_value = cursor
        table = dm.get_schema("Views", [None, None, None])
        assert table.column_values("TABLE_NAME") == ["v_totals"]

    def test_unknown_collection(self, dm: DatabaseManager) -> None:
        assert dm.get_schema("Procedures") is None

    def test_query_failure_returns_none(self, dm: DatabaseManager, conn: MagicMock) -> None:
        conn.cursor.return_value = _dict_cursor([], error=mysql.connector.Error("gone"))
        assert dm.get_schema("Columns", [None, None, "Accounts", None]) is None

    def test_no_database_selected(self, conn: MagicMock) -> None:
        with patch("core.database.mysql.connector.connect", return_value=conn):
            manager = DatabaseManager("h", 3306, "u", "p")
            manager.connect()
        assert manager.get_schema("Tables", [None, None, None, "Table"]) is None

    def test_disconnected_returns_none(self) -> None:
        manager = DatabaseManager("h", 3306, "u", "p", database="finance")
        assert manager.get_schema("Tables") is None


class TestQueryRows:
    def test_rows_returned(self, dm: DatabaseManager, conn: MagicMock) -> None:
        cursor = _dict_cursor([{"ID": 1, "Name": "Cash"}])
        conn.cursor.return_value = cursor
        table = dm.query_rows("SELECT * FROM `Accounts`;")
        assert table.columns == ["ID", "Name"]
        assert list(table) == [{"ID": 1, "Name": "Cash"}]
        conn.cursor.assert_called_with(dictionary=True)
        cursor.close.assert_called_once()

    def test_failure_returns_none(self, dm: DatabaseManager, conn: MagicMock) -> None:
        conn.cursor.return_value = _dict_cursor([], error=mysql.connector.Error("locked"))
        assert dm.query_rows("SELECT * FROM `Accounts`;") is None

