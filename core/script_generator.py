"""
core/script_generator.py
------------------------
Renders the assembled schema into a SQL script that recreates the tables
(and optionally their rows) on a SQLite-style target.

Script layout, always in this order::

    header comments (attribution + warning)
    DROP TABLE IF EXISTS …;      one per table
    CREATE TABLE … ( … );        one per table
    INSERT INTO … VALUES (…);    one per row, grouped by table (optional)

Design Decisions:
    * Lines are produced by a generator so ``write_script`` can stream them
      to disk and ``generate_script`` can join them for tests.
    * Values are formatted by the column's portable type, not by the Python
      type of the cell. A cell that cannot be rendered becomes ``NULL`` so
      the script stays valid SQL; the failure is raised as
      :class:`ValueFormattingError` and converted at ``format_value``.
    * String and blob literals are wrapped in double quotes with no
      escaping of embedded quote characters (known gap).
    * The output file is truncated before writing. A write failure part-way
      leaves a truncated file and is reported as :class:`ScriptWriteError`;
      nothing is retried.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Protocol

from logger import get_logger
from models.schema import PortableType, ResultTable, Schema, SchemaColumn

log = get_logger(__name__)

NULL_LITERAL = "NULL"

HEADER_LINES = (
    "-- This file has been created by the schema export utility.",
    "-- It is provided 'as is' and may be used freely, with no acceptance of liability.",
    "-- If used with existing databases this may destroy information. "
    "Take a backup before running it.",
)

_UNQUOTED_TYPES = frozenset(
    {PortableType.INTEGER, PortableType.DECIMAL, PortableType.DOUBLE, PortableType.BOOLEAN}
)

# cells of these types have no unquoted numeric literal form
_NON_SCALAR_TYPES = (bytes, bytearray, memoryview, set, frozenset, list, tuple, dict)


class ValueFormattingError(Exception):
    """Raised when a cell cannot be rendered as a literal of its column type."""


class ScriptWriteError(Exception):
    """Raised when the SQL script cannot be opened or written."""


class DataSource(Protocol):
    """Anything that can return every row of a table for a SELECT."""

    def query_rows(self, sql: str) -> ResultTable | None:
        ...


@dataclass
class ScriptStats:
    """Summary of one script written to disk."""
    path: Path
    tables: list[str] = field(default_factory=list)
    rows_written: int = 0
    tables_without_data: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Value formatting
# ---------------------------------------------------------------------------

def _format_number(value: Any) -> str:
    if value is None:
        return NULL_LITERAL
    if isinstance(value, _NON_SCALAR_TYPES):
        raise ValueFormattingError(f"not a numeric value: {type(value).__name__}")
    try:
        text = str(value)
    except Exception as exc:
        raise ValueFormattingError(f"cannot render {type(value).__name__}") from exc
    return text if text else NULL_LITERAL


def _format_date(value: Any) -> str:
    # datetime.datetime is a subclass of datetime.date
    if not isinstance(value, datetime.date):
        raise ValueFormattingError(f"not a date value: {value!r}")
    return f"'{value.year:04d}-{value.month:02d}-{value.day:02d}'"


def _format_text(value: Any) -> str:
    if value is None:
        raise ValueFormattingError("null text value")
    if isinstance(value, (bytes, bytearray, memoryview)):
        try:
            value = bytes(value).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValueFormattingError("binary value is not UTF-8 text") from exc
    try:
        return f'"{value}"'
    except Exception as exc:
        raise ValueFormattingError(f"cannot render {type(value).__name__}") from exc


def format_value(value: Any, ptype: PortableType) -> str:
    """
    Render one cell as a SQL literal for a column of type *ptype*.

    Never raises: a :class:`ValueFormattingError` becomes ``NULL``.

    Examples::

        format_value(42, PortableType.INTEGER)        →  "42"
        format_value(None, PortableType.INTEGER)      →  "NULL"
        format_value(date(2020, 7, 1), DATETIME)      →  "'2020-07-01'"
        format_value("Smith", PortableType.STRING)    →  '"Smith"'
    """
    try:
        if ptype in _UNQUOTED_TYPES:
            return _format_number(value)
        if ptype == PortableType.DATETIME:
            return _format_date(value)
        return _format_text(value)
    except ValueFormattingError as exc:
        log.debug("Value rendered as NULL (%s): %s", ptype.value, exc)
        return NULL_LITERAL


# ---------------------------------------------------------------------------
# Statement builders
# ---------------------------------------------------------------------------

def quote_identifier(name: str) -> str:
    return f'"{name}"'


def drop_table_sql(table_name: str) -> str:
    return f"DROP TABLE IF EXISTS {quote_identifier(table_name)};"


def column_definition(col: SchemaColumn) -> str:
    """Column fragment plus ``AUTOINCREMENT`` for integer primary keys."""
    fragment = col.render()
    if col.type == PortableType.INTEGER and col.is_primary_key:
        fragment += " AUTOINCREMENT"
    return fragment


def create_table_sql(table_name: str, columns: list[SchemaColumn]) -> str:
    """
    Generate a ``CREATE TABLE`` statement.

    Example::

        CREATE TABLE "T" (
        \t"id" INTEGER PRIMARY KEY AUTOINCREMENT,
        \t"name" STRING NULL
        );
    """
    body = ", \n".join(f"\t{column_definition(col)}" for col in columns)
    return f"CREATE TABLE {quote_identifier(table_name)} (\n{body}\n);"


def insert_sql(table_name: str, columns: list[SchemaColumn], row: dict[str, Any]) -> str:
    """
    Generate one ``INSERT`` statement. Columns and values follow the column
    list order, the same order used by ``create_table_sql``.
    """
    col_list = ", ".join(quote_identifier(col.name) for col in columns)
    values = ", ".join(
        format_value(row[col.name], col.type) if col.name in row else NULL_LITERAL
        for col in columns
    )
    return f"INSERT INTO {quote_identifier(table_name)} ({col_list}) \n\tVALUES ({values});"


def select_all_sql(table_name: str) -> str:
    """The source-side query used to read a table's rows (MySQL quoting)."""
    return f"SELECT * FROM `{table_name}`;"


# ---------------------------------------------------------------------------
# Script assembly
# ---------------------------------------------------------------------------

def _fetch_rows(data_source: DataSource | None, table_name: str) -> ResultTable | None:
    if data_source is None:
        return None
    return data_source.query_rows(select_all_sql(table_name))


def iter_script_lines(
    schema: Schema,
    data_source: DataSource | None = None,
    include_data: bool = False,
    stats: ScriptStats | None = None,
) -> Iterator[str]:
    """
    Yield the script one line (or multi-line statement) at a time.

    Args:
        schema:        Table name → ordered column list.
        data_source:   Row provider, only used when *include_data* is True.
        include_data:  Emit INSERT statements for every row.
        stats:         Optional :class:`ScriptStats` updated as rows are
                       emitted.
    """
    yield from HEADER_LINES
    yield ""

    yield "-- Check whether the table names are already present and drop if so."
    yield ""
    for table_name in schema:
        yield drop_table_sql(table_name)

    yield ""
    yield "-- Create the table definitions in the database file."
    yield ""
    for table_name, columns in schema.items():
        yield create_table_sql(table_name, columns)
        yield ""
        if stats is not None:
            stats.tables.append(table_name)
    log.info("SQL schema script creation complete.")

    if not include_data:
        return

    yield ""
    yield "-- Writing the data for each table to the script file..."
    record_count = 0
    for table_name, columns in schema.items():
        yield ""
        yield f"--Writing records for table: {table_name}..."
        table_rows = _fetch_rows(data_source, table_name)
        if table_rows is None:
            log.warning("Row data unavailable for '%s'; no INSERT statements written.", table_name)
            if stats is not None:
                stats.tables_without_data.append(table_name)
            continue
        for row in table_rows:
            yield insert_sql(table_name, columns, row)
            record_count += 1
            if stats is not None:
                stats.rows_written += 1
    log.info("SQL data script creation complete (%d records).", record_count)


def generate_script(
    schema: Schema,
    data_source: DataSource | None = None,
    include_data: bool = False,
) -> str:
    """Return the complete script as a single string."""
    return "\n".join(iter_script_lines(schema, data_source, include_data)) + "\n"


def write_script(
    output_path: Path | str,
    schema: Schema,
    data_source: DataSource | None = None,
    include_data: bool = False,
) -> ScriptStats:
    """
    Write the script to *output_path*, replacing any previous content.

    Returns:
        :class:`ScriptStats` for the written file.

    Raises:
        ScriptWriteError: If the file cannot be opened or written. The file
            may be left truncated.
    """
    path = Path(output_path)
    stats = ScriptStats(path=path)
    try:
        with path.open("w", encoding="utf-8", newline="\n") as fh:
            for line in iter_script_lines(schema, data_source, include_data, stats):
                fh.write(line)
                fh.write("\n")
    except OSError as exc:
        raise ScriptWriteError(f"Cannot write SQL script '{path}': {exc}") from exc

    log.info(
        "Generated SQL script: %s (%d table(s), %d row(s)).",
        path, len(stats.tables), stats.rows_written,
    )
    return stats
