"""core/__init__.py"""
from core.database import DatabaseManager, DatabaseError, ConnectionLostError
from core.type_mapper import map_type_code, mysql_type_code
from core.schema_builder import (
    build_schema,
    collect_columns,
    collect_tables,
    merge_primary_keys,
)
from core.script_generator import (
    generate_script,
    write_script,
    format_value,
    ScriptWriteError,
    ValueFormattingError,
)
from core.metadata_logger import MetadataLogger, LogWriteError
from core.exporter import build_and_generate, ExportResult

__all__ = [
    "DatabaseManager",
    "DatabaseError",
    "ConnectionLostError",
    "map_type_code",
    "mysql_type_code",
    "build_schema",
    "collect_columns",
    "collect_tables",
    "merge_primary_keys",
    "generate_script",
    "write_script",
    "format_value",
    "ScriptWriteError",
    "ValueFormattingError",
    "MetadataLogger",
    "LogWriteError",
    "build_and_generate",
    "ExportResult",
]
