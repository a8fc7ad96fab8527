"""
core/exporter.py
----------------
Export run orchestration: schema log, schema assembly, SQL script.

Design Decisions:
    * The exporter is a plain function with injected collaborators (a
      metadata provider, a data source, an optional schema log). No global
      state; one call per run.
    * Each raw metadata table is handed to the schema log through the
      builder's ``on_metadata`` callback, so the builder never depends on
      log formatting.
    * A schema-log write failure stops further logging but the script is
      still produced. A script write failure is fatal and propagates.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path

from core.metadata_logger import LogWriteError, MetadataLogger, VIEWS_WIDTH
from core.schema_builder import MetadataProvider, build_schema
from core.script_generator import DataSource, ScriptStats, write_script
from logger import get_logger
from models.schema import ResultTable, Schema

log = get_logger(__name__)


@dataclass
class ExportResult:
    """Outcome of one export run."""
    script_path: Path
    log_path: Path | None = None
    tables: list[str] = field(default_factory=list)
    rows_written: int = 0
    warnings: list[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    def __str__(self) -> str:
        parts = [
            f"Script: {self.script_path} ({len(self.tables)} table(s), "
            f"{self.rows_written} row(s), {self.elapsed_seconds:.1f}s)"
        ]
        if self.log_path is not None:
            parts.append(f"Schema log: {self.log_path}")
        if self.warnings:
            parts.append(f"  Warnings: {'; '.join(self.warnings)}")
        return "\n".join(parts)


class _SchemaLogSink:
    """Forwards metadata sections to a MetadataLogger until a write fails."""

    def __init__(self, metadata_log: MetadataLogger | None, warnings: list[str]) -> None:
        self._log = metadata_log
        self._warnings = warnings

    def write(self, title: str, table: ResultTable, width: int | None = None) -> None:
        if self._log is None:
            return
        try:
            if width is None:
                self._log.write_section(table, title)
            else:
                self._log.write_section(table, title, width)
        except LogWriteError as exc:
            log.error("Schema log disabled for the rest of the run: %s", exc)
            self._warnings.append(str(exc))
            self._log = None

    __call__ = write


def _log_optional_section(
    provider: MetadataProvider,
    sink: _SchemaLogSink,
    collection: str,
    restrictions: list[str | None],
    title: str,
    width: int | None = None,
) -> None:
    table = provider.get_schema(collection, restrictions)
    if table is None:
        log.warning("Metadata collection '%s' unavailable; not logged.", collection or "(all)")
        return
    sink.write(title, table, width)
    log.info("Logged %s section.", title)


def assemble_schema(
    provider: MetadataProvider, metadata_log: MetadataLogger | None = None
) -> tuple[Schema, list[str]]:
    """
    Log the raw metadata and build the schema.

    Returns:
        ``(schema, warnings)``.
    """
    warnings: list[str] = []
    sink = _SchemaLogSink(metadata_log, warnings)

    _log_optional_section(provider, sink, "", [None, None, None, None], "Metadata")
    schema = build_schema(provider, on_metadata=sink)
    _log_optional_section(provider, sink, "Views", [None, None, None], "Views", VIEWS_WIDTH)
    return schema, warnings


def build_and_generate(
    metadata_provider: MetadataProvider,
    data_provider: DataSource | None,
    output_destination: Path | str,
    include_data: bool,
    metadata_log: MetadataLogger | None = None,
) -> ExportResult:
    """
    Run a complete export.

    Args:
        metadata_provider:   Answers ``get_schema`` collection requests.
        data_provider:       Returns table rows; only used with *include_data*.
        output_destination:  Path of the SQL script (overwritten).
        include_data:        Emit INSERT statements for every row.
        metadata_log:        Optional schema log; reset before the run.

    Returns:
        :class:`ExportResult`.

    Raises:
        ScriptWriteError: If the SQL script cannot be written.
    """
    start = time.monotonic()
    warnings: list[str] = []

    if metadata_log is not None:
        try:
            metadata_log.reset()
        except LogWriteError as exc:
            log.error("Schema log unavailable: %s", exc)
            warnings.append(str(exc))
            metadata_log = None

    schema, build_warnings = assemble_schema(metadata_provider, metadata_log)
    warnings.extend(build_warnings)
    if not schema:
        warnings.append("No tables found; the script contains no table definitions.")

    stats: ScriptStats = write_script(
        output_destination, schema, data_provider, include_data
    )
    warnings.extend(
        f"Row data unavailable for table '{name}'." for name in stats.tables_without_data
    )

    result = ExportResult(
        script_path=stats.path,
        log_path=metadata_log.log_path if metadata_log is not None else None,
        tables=stats.tables,
        rows_written=stats.rows_written,
        warnings=warnings,
        elapsed_seconds=time.monotonic() - start,
    )
    log.info("Export complete.\n%s", result)
    return result
