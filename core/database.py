"""
core/database.py
----------------
MySQL connection management and metadata retrieval.

``DatabaseManager`` is the metadata provider and the data source used by the
exporter. Metadata is exposed through ``get_schema`` as named collections
(``Tables``, ``Columns``, ``Indexes``, ``Views``) read from
``information_schema``, with positional restrictions::

    Tables   catalog, schema, table name, table type ("Table", "View")
    Columns  catalog, schema, table name, column name
    Indexes  catalog, schema, constraint name ("PrimaryKey"), column, table
    Views    catalog, schema, view name

Column types are reported in ``DATA_TYPE`` as OLE DB type codes (see
:func:`core.type_mapper.mysql_type_code`); the MySQL type name is kept in
``TYPE_NAME``.

Design Decisions:
    * ``DatabaseManager`` is a context manager so callers can use it with
      ``with`` statements and be guaranteed the connection is closed on exit.
    * Retry logic is implemented for transient connection errors using
      back-off (configurable via ``max_retries`` / ``retry_delay``).
    * Restriction values are passed as ``%s`` parameters; only the
      backtick-quoted table name of ``SELECT *`` is built into SQL text.
    * ``get_schema`` and ``query_rows`` never raise for query failures: the
      error is logged and ``None`` is returned so the caller can skip that
      step and carry on.
"""
from __future__ import annotations

import time
from typing import Any, Sequence

import mysql.connector
from mysql.connector import MySQLConnection

from core.type_mapper import mysql_type_code
from logger import get_logger
from models.schema import ResultTable

log = get_logger(__name__)

_TABLE_TYPES = {
    "table": "BASE TABLE",
    "view": "VIEW",
    "system table": "SYSTEM VIEW",
}
_PRIMARY_KEY_NAMES = {"primarykey": "PRIMARY"}

_METADATA_COLLECTIONS = (
    # CollectionName, NumberOfRestrictions, NumberOfIdentifierParts
    ("MetaDataCollections", 0, 0),
    ("Tables", 4, 3),
    ("Columns", 4, 4),
    ("Indexes", 5, 4),
    ("Views", 3, 3),
)


class DatabaseError(Exception):
    """Raised for database-level failures reported by this module."""


class ConnectionLostError(DatabaseError):
    """Raised when the connection to MySQL is detected as lost."""


def _text(value: Any) -> Any:
    # information_schema columns come back as bytes with some server/driver pairs
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return value


def _restriction(restrictions: Sequence[str | None] | None, index: int) -> str | None:
    if not restrictions or index >= len(restrictions):
        return None
    value = restrictions[index]
    return value if value else None


class DatabaseManager:
    """
    MySQL connection wrapper answering metadata and row queries.

    Example::

        with DatabaseManager("localhost", 3306, "root", "secret", database="finance") as dm:
            tables = dm.get_schema("Tables", [None, None, None, "Table"])
            rows = dm.query_rows("SELECT * FROM `accounts`;")
    """

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        database: str | None = None,
        charset: str = "utf8mb4",
        connect_timeout: int = 10,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ) -> None:
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._charset = charset
        self._connect_timeout = connect_timeout
        self._max_retries = max_retries
        self._retry_delay = retry_delay

        self._conn: MySQLConnection | None = None
        self.current_database: str | None = database

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> "DatabaseManager":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is not None:
            log.warning("Unhandled exception in DatabaseManager context: %s", exc_val)
        self.close()
        return False  # Never suppress exceptions

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """
        Open (or re-open) the MySQL connection with back-off retries.

        Raises:
            DatabaseError: If connection fails after all retries.
        """
        for attempt in range(1, self._max_retries + 1):
            try:
                log.info(
                    "Connecting to MySQL at %s:%s (attempt %d/%d)",
                    self._host, self._port, attempt, self._max_retries,
                )
                params: dict[str, Any] = dict(
                    host=self._host,
                    port=self._port,
                    user=self._user,
                    password=self._password,
                    charset=self._charset,
                    connect_timeout=self._connect_timeout,
                )
                if self.current_database:
                    params["database"] = self.current_database
                self._conn = mysql.connector.connect(**params)
                log.info("Connected to MySQL successfully.")
                return
            except mysql.connector.Error as exc:
                log.warning("Connection attempt %d failed: %s", attempt, exc)
                if attempt < self._max_retries:
                    time.sleep(self._retry_delay * attempt)
        raise DatabaseError(
            f"Could not connect to MySQL at {self._host}:{self._port} "
            f"after {self._max_retries} attempts."
        )

    def close(self) -> None:
        """Close the connection, logging any cleanup errors."""
        try:
            if self._conn and self._conn.is_connected():
                self._conn.close()
                log.info("Database connection closed.")
        except mysql.connector.Error as exc:
            log.debug("Connection close failed: %s", exc)
        self._conn = None

    @property
    def is_connected(self) -> bool:
        return bool(self._conn and self._conn.is_connected())

    def _ensure_connected(self) -> None:
        if not self.is_connected:
            raise ConnectionLostError(
                "Database connection is not open. Call connect() first."
            )

    # ------------------------------------------------------------------
    # Row queries
    # ------------------------------------------------------------------

    def _query_table(self, sql: str, params: tuple | None = None) -> ResultTable:
        """Run a query on a dictionary cursor and return it as a ResultTable."""
        self._ensure_connected()
        assert self._conn is not None
        cursor = self._conn.cursor(dictionary=True)
        try:
            cursor.execute(sql, params)
            rows = cursor.fetchall() or []
            columns = list(cursor.column_names or [])
        except mysql.connector.Error as exc:
            log.error("SQL execution error: %s | SQL: %.500s", exc, sql)
            raise DatabaseError(str(exc)) from exc
        finally:
            cursor.close()
        return ResultTable(columns=columns, rows=[dict(row) for row in rows])

    def query_rows(self, sql: str) -> ResultTable | None:
        """
        Return every row of a SELECT, or ``None`` if the query failed.
        """
        try:
            return self._query_table(sql)
        except DatabaseError as exc:
            log.error("Row query failed: %s", exc)
            return None

    # ------------------------------------------------------------------
    # Metadata collections
    # ------------------------------------------------------------------

    def get_schema(
        self,
        collection_name: str = "",
        restrictions: Sequence[str | None] | None = None,
    ) -> ResultTable | None:
        """
        Return a metadata collection, or ``None`` if it could not be read.

        Args:
            collection_name: ``""`` (list of collections), ``"Tables"``,
                             ``"Columns"``, ``"Indexes"`` or ``"Views"``.
            restrictions:    Positional filters; ``None`` entries are ignored.
        """
        handlers = {
            "": self._collections,
            "tables": self._tables,
            "columns": self._columns,
            "indexes": self._indexes,
            "views": self._views,
        }
        handler = handlers.get(collection_name.lower())
        if handler is None:
            log.error("Unknown metadata collection '%s'.", collection_name)
            return None
        try:
            return handler(restrictions)
        except DatabaseError as exc:
            log.error(
                "Failed to read metadata collection '%s': %s", collection_name or "(all)", exc
            )
            return None

    def _schema_name(self, restrictions: Sequence[str | None] | None) -> str:
        name = _restriction(restrictions, 1) or self.current_database
        if not name:
            raise DatabaseError("No database selected for metadata query.")
        return name

    def _collections(self, restrictions: Sequence[str | None] | None) -> ResultTable:
        columns = ["CollectionName", "NumberOfRestrictions", "NumberOfIdentifierParts"]
        return ResultTable(
            columns=columns,
            rows=[dict(zip(columns, entry)) for entry in _METADATA_COLLECTIONS],
        )

    def _tables(self, restrictions: Sequence[str | None] | None) -> ResultTable:
        sql = (
            "SELECT TABLE_CATALOG AS TABLE_CATALOG, TABLE_SCHEMA AS TABLE_SCHEMA, "
            "TABLE_NAME AS TABLE_NAME, TABLE_TYPE AS TABLE_TYPE, ENGINE AS ENGINE, "
            "TABLE_ROWS AS TABLE_ROWS, CREATE_TIME AS DATE_CREATED, "
            "UPDATE_TIME AS DATE_MODIFIED, TABLE_COMMENT AS DESCRIPTION "
            "FROM information_schema.TABLES WHERE TABLE_SCHEMA = %s"
        )
        params: list[Any] = [self._schema_name(restrictions)]
        table_name = _restriction(restrictions, 2)
        if table_name:
            sql += " AND TABLE_NAME = %s"
            params.append(table_name)
        table_type = _restriction(restrictions, 3)
        if table_type:
            sql += " AND TABLE_TYPE = %s"
            params.append(_TABLE_TYPES.get(table_type.lower(), table_type))
        sql += " ORDER BY TABLE_NAME"
        table = self._query_table(sql, tuple(params))
        for row in table.rows:
            for key in ("TABLE_NAME", "TABLE_TYPE", "DESCRIPTION"):
                row[key] = _text(row.get(key))
        return table

    def _columns(self, restrictions: Sequence[str | None] | None) -> ResultTable:
        sql = (
            "SELECT TABLE_NAME AS TABLE_NAME, COLUMN_NAME AS COLUMN_NAME, "
            "ORDINAL_POSITION AS ORDINAL_POSITION, COLUMN_DEFAULT AS COLUMN_DEFAULT, "
            "IS_NULLABLE AS IS_NULLABLE, DATA_TYPE AS TYPE_NAME, "
            "COLUMN_TYPE AS COLUMN_TYPE, "
            "CHARACTER_MAXIMUM_LENGTH AS CHARACTER_MAXIMUM_LENGTH, "
            "NUMERIC_PRECISION AS NUMERIC_PRECISION, NUMERIC_SCALE AS NUMERIC_SCALE "
            "FROM information_schema.COLUMNS WHERE TABLE_SCHEMA = %s"
        )
        params: list[Any] = [self._schema_name(restrictions)]
        table_name = _restriction(restrictions, 2)
        if table_name:
            sql += " AND TABLE_NAME = %s"
            params.append(table_name)
        column_name = _restriction(restrictions, 3)
        if column_name:
            sql += " AND COLUMN_NAME = %s"
            params.append(column_name)
        sql += " ORDER BY TABLE_NAME, ORDINAL_POSITION"
        raw = self._query_table(sql, tuple(params))

        columns = [
            "TABLE_NAME", "COLUMN_NAME", "ORDINAL_POSITION", "COLUMN_DEFAULT",
            "IS_NULLABLE", "DATA_TYPE", "TYPE_NAME", "CHARACTER_MAXIMUM_LENGTH",
            "NUMERIC_PRECISION", "NUMERIC_SCALE",
        ]
        rows = []
        for row in raw.rows:
            type_name = _text(row.get("TYPE_NAME")) or ""
            column_type = _text(row.get("COLUMN_TYPE")) or ""
            rows.append({
                "TABLE_NAME": _text(row.get("TABLE_NAME")),
                "COLUMN_NAME": _text(row.get("COLUMN_NAME")),
                "ORDINAL_POSITION": row.get("ORDINAL_POSITION"),
                "COLUMN_DEFAULT": _text(row.get("COLUMN_DEFAULT")),
                "IS_NULLABLE": str(_text(row.get("IS_NULLABLE"))).upper() == "YES",
                "DATA_TYPE": mysql_type_code(type_name, column_type),
                "TYPE_NAME": type_name,
                "CHARACTER_MAXIMUM_LENGTH": row.get("CHARACTER_MAXIMUM_LENGTH"),
                "NUMERIC_PRECISION": row.get("NUMERIC_PRECISION"),
                "NUMERIC_SCALE": row.get("NUMERIC_SCALE"),
            })
        return ResultTable(columns=columns, rows=rows)

    def _indexes(self, restrictions: Sequence[str | None] | None) -> ResultTable:
        sql = (
            "SELECT TABLE_NAME AS TABLE_NAME, INDEX_NAME AS INDEX_NAME, "
            "COLUMN_NAME AS COLUMN_NAME, SEQ_IN_INDEX AS ORDINAL_POSITION, "
            "NON_UNIQUE AS NON_UNIQUE "
            "FROM information_schema.STATISTICS WHERE TABLE_SCHEMA = %s"
        )
        params: list[Any] = [self._schema_name(restrictions)]
        index_name = _restriction(restrictions, 2)
        if index_name:
            sql += " AND INDEX_NAME = %s"
            params.append(_PRIMARY_KEY_NAMES.get(index_name.lower(), index_name))
        column_name = _restriction(restrictions, 3)
        if column_name:
            sql += " AND COLUMN_NAME = %s"
            params.append(column_name)
        table_name = _restriction(restrictions, 4)
        if table_name:
            sql += " AND TABLE_NAME = %s"
            params.append(table_name)
        sql += " ORDER BY TABLE_NAME, INDEX_NAME, SEQ_IN_INDEX"
        raw = self._query_table(sql, tuple(params))

        columns = [
            "TABLE_NAME", "INDEX_NAME", "PRIMARY_KEY", "UNIQUE",
            "COLUMN_NAME", "ORDINAL_POSITION",
        ]
        rows = []
        for row in raw.rows:
            index = _text(row.get("INDEX_NAME"))
            rows.append({
                "TABLE_NAME": _text(row.get("TABLE_NAME")),
                "INDEX_NAME": index,
                "PRIMARY_KEY": index == "PRIMARY",
                "UNIQUE": not bool(row.get("NON_UNIQUE")),
                "COLUMN_NAME": _text(row.get("COLUMN_NAME")),
                "ORDINAL_POSITION": row.get("ORDINAL_POSITION"),
            })
        return ResultTable(columns=columns, rows=rows)

    def _views(self, restrictions: Sequence[str | None] | None) -> ResultTable:
        sql = (
            "SELECT TABLE_CATALOG AS TABLE_CATALOG, TABLE_SCHEMA AS TABLE_SCHEMA, "
            "TABLE_NAME AS TABLE_NAME, VIEW_DEFINITION AS VIEW_DEFINITION, "
            "CHECK_OPTION AS CHECK_OPTION, IS_UPDATABLE AS IS_UPDATABLE "
            "FROM information_schema.VIEWS WHERE TABLE_SCHEMA = %s"
        )
        params: list[Any] = [self._schema_name(restrictions)]
        view_name = _restriction(restrictions, 2)
        if view_name:
            sql += " AND TABLE_NAME = %s"
            params.append(view_name)
        sql += " ORDER BY TABLE_NAME"
        table = self._query_table(sql, tuple(params))
        for row in table.rows:
            for key in ("TABLE_NAME", "VIEW_DEFINITION"):
                row[key] = _text(row.get(key))
        return table
