"""
core/schema_builder.py
----------------------
Assembles the in-memory schema from raw metadata collections.

Build order::

    collect_tables      →  ["Customers", "Orders", …]
    collect_columns     →  {"Customers": [SchemaColumn, …], …}
    merge_primary_keys  →  new schema with primary-key flags set

Design Decisions:
    * Pure functions taking an explicit metadata provider; no module state.
    * A provider returns ``None`` when a request fails. That is treated as
      an absent result: the affected table is skipped (columns) or left
      without key flags (indexes) and the build carries on.
    * ``merge_primary_keys`` returns a *new* schema; the column pass output
      is never mutated.
    * Composite primary keys are not collapsed into a table constraint.
      Every participating column is flagged on its own, which renders as
      several column-level ``PRIMARY KEY`` clauses. This is a known
      limitation and is logged, not corrected.
"""
from __future__ import annotations

from typing import Any, Callable, Protocol, Sequence

from core.type_mapper import map_type_code
from logger import get_logger
from models.schema import ResultTable, Schema, SchemaColumn

log = get_logger(__name__)

MetadataCallback = Callable[[str, ResultTable], None]  # title, raw table

PRIMARY_KEY_INDEX = "PrimaryKey"
BASE_TABLE_TYPE = "Table"


class MetadataProvider(Protocol):
    """Anything that can answer ``getSchema``-style collection requests."""

    def get_schema(
        self, collection_name: str, restrictions: Sequence[str | None] | None = None
    ) -> ResultTable | None:
        ...


def _emit(on_metadata: MetadataCallback | None, title: str, table: ResultTable) -> None:
    if on_metadata is not None:
        on_metadata(title, table)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().upper() in ("YES", "Y", "TRUE", "1")
    return bool(value)


def _ordinal(row: dict[str, Any]) -> int:
    try:
        return int(row.get("ORDINAL_POSITION") or 0)
    except (TypeError, ValueError):
        return 0


def collect_tables(
    provider: MetadataProvider, on_metadata: MetadataCallback | None = None
) -> list[str]:
    """
    Return user table names in the order the source reports them.

    The ``Tables`` collection takes four restrictions (catalog, schema,
    table name, table type); only the type is set, to ``"Table"``, so views
    and system tables are left out.
    """
    table_data = provider.get_schema("Tables", [None, None, None, BASE_TABLE_TYPE])
    if table_data is None:
        log.warning("Table metadata unavailable; the schema will be empty.")
        return []

    _emit(on_metadata, "Tables", table_data)
    names: list[str] = []
    for row in table_data:
        name = row.get("TABLE_NAME")
        if name is None:
            continue
        name = str(name)
        if name not in names:
            names.append(name)
    log.info("Processed database table data: %d table(s).", len(names))
    return names


def columns_from_metadata(table_data: ResultTable) -> list[SchemaColumn]:
    """
    Build the column list for one table from its ``Columns`` metadata rows.

    Rows are ordered by ``ORDINAL_POSITION``; ``sorted`` is stable, so ties
    keep the order the source returned them in.
    """
    columns: list[SchemaColumn] = []
    for row in sorted(table_data.rows, key=_ordinal):
        columns.append(
            SchemaColumn(
                name=str(row.get("COLUMN_NAME")),
                type=map_type_code(row.get("DATA_TYPE")),
                is_nullable=_as_bool(row.get("IS_NULLABLE")),
                is_primary_key=False,
            )
        )
    return columns


def collect_columns(
    provider: MetadataProvider,
    table_names: Sequence[str],
    on_metadata: MetadataCallback | None = None,
) -> Schema:
    """
    Return the column pass of the schema: one entry per table whose column
    metadata could be read, with every ``is_primary_key`` left False.

    The ``Columns`` collection restrictions are catalog, schema, table name
    and column name; position 2 carries the table name.
    """
    schema: Schema = {}
    for table_name in table_names:
        table_data = provider.get_schema("Columns", [None, None, table_name, None])
        if table_data is None:
            log.warning("Column metadata unavailable for '%s'; table skipped.", table_name)
            continue
        _emit(on_metadata, f"Columns for Table: {table_name}", table_data)
        schema[table_name] = columns_from_metadata(table_data)

    log.info(
        "Processed database column data: %d table(s), %d column(s).",
        len(schema),
        sum(len(cols) for cols in schema.values()),
    )
    return schema


def primary_key_columns(index_data: ResultTable) -> list[str]:
    """Return the key column names of a primary-key index, in key order."""
    return [
        str(row.get("COLUMN_NAME"))
        for row in sorted(index_data.rows, key=_ordinal)
        if row.get("COLUMN_NAME") is not None
    ]


def merge_primary_keys(
    provider: MetadataProvider,
    schema: Schema,
    on_metadata: MetadataCallback | None = None,
) -> Schema:
    """
    Return a copy of *schema* with primary-key flags merged in.

    The ``Indexes`` collection takes five restrictions (catalog, schema,
    constraint name, column name, table name). The constraint name is
    ``"PrimaryKey"`` and position 4 carries the table name.
    """
    merged: Schema = {}
    for table_name, columns in schema.items():
        key_names: list[str] = []
        index_data = provider.get_schema(
            "Indexes", [None, None, PRIMARY_KEY_INDEX, None, table_name]
        )
        if index_data is None:
            log.warning(
                "Index metadata unavailable for '%s'; no primary key flagged.", table_name
            )
        else:
            _emit(on_metadata, f"Index for Table:{table_name}", index_data)
            key_names = primary_key_columns(index_data)

        key_set = set(key_names)
        if len(key_set) > 1:
            log.warning(
                "Table '%s' has a composite primary key (%s); each column is "
                "flagged PRIMARY KEY on its own and the DDL may be rejected.",
                table_name, ", ".join(key_names),
            )
        merged[table_name] = [
            col.with_primary_key(col.name in key_set) for col in columns
        ]

    log.info("Processed database index data.")
    return merged


def build_schema(
    provider: MetadataProvider, on_metadata: MetadataCallback | None = None
) -> Schema:
    """Run the table, column and primary-key passes and return the schema."""
    table_names = collect_tables(provider, on_metadata)
    schema = collect_columns(provider, table_names, on_metadata)
    return merge_primary_keys(provider, schema, on_metadata)
