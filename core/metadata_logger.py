"""
core/metadata_logger.py
-----------------------
Writes the human-readable schema log: one fixed-width section per raw
metadata table (database collections, tables, columns per table, primary
key index per table, views).

The log is documentation only; nothing downstream reads it.

Section format::

    <blank line>
    Columns for Table: Customers
    ================================================================================
    TABLE_NAME               COLUMN_NAME              …
    Customers                CustomerID               …
    <blank line>
"""
from __future__ import annotations

import datetime
import decimal
from pathlib import Path
from typing import Any

from config import CONFIG
from logger import get_logger
from models.schema import ResultTable

log = get_logger(__name__)

SEPARATOR = "=" * 80
DEFAULT_WIDTH = 25
VIEWS_WIDTH = 32


class LogWriteError(Exception):
    """Raised when the schema log cannot be written."""


def format_cell(value: Any, currency_symbol: str = "$") -> str:
    """Display form of one metadata value."""
    if value is None:
        return ""
    if isinstance(value, (datetime.date, datetime.datetime)):
        return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
    if isinstance(value, decimal.Decimal):
        sign = "-" if value < 0 else ""
        return f"{sign}{currency_symbol}{abs(value):,.2f}"
    return str(value)


def render_section(
    table: ResultTable,
    title: str,
    width: int = DEFAULT_WIDTH,
    currency_symbol: str = "$",
) -> str:
    """Return one log section as text. Cells are padded, never truncated."""
    lines = ["", title, SEPARATOR]
    lines.append("".join(str(col).ljust(width) for col in table.columns))
    for row in table.rows:
        lines.append(
            "".join(
                format_cell(row.get(col), currency_symbol).ljust(width)
                for col in table.columns
            )
        )
    lines.append("")
    return "\n".join(lines) + "\n"


class MetadataLogger:
    """
    Appends metadata sections to a schema log file.

    Example::

        mlog = MetadataLogger(Path("out/Migration-Log.txt"))
        mlog.reset()
        mlog.write_section(tables, "Tables")
    """

    def __init__(self, log_path: Path | str, currency_symbol: str | None = None) -> None:
        self.log_path = Path(log_path)
        self._currency_symbol = (
            currency_symbol if currency_symbol is not None else CONFIG.export.currency_symbol
        )
        self.sections_written = 0

    def reset(self) -> None:
        """Remove any log left by a previous run."""
        try:
            self.log_path.unlink(missing_ok=True)
        except OSError as exc:
            raise LogWriteError(f"Cannot remove old schema log '{self.log_path}': {exc}") from exc

    def write_section(self, table: ResultTable, title: str, width: int = DEFAULT_WIDTH) -> None:
        """
        Append one section for *table* to the log.

        Raises:
            LogWriteError: If the log file cannot be opened or written.
        """
        text = render_section(table, title, width, self._currency_symbol)
        try:
            with self.log_path.open("a", encoding="utf-8") as fh:
                fh.write(text)
        except OSError as exc:
            raise LogWriteError(f"Cannot write schema log '{self.log_path}': {exc}") from exc
        self.sections_written += 1
        log.debug("Logged section '%s' (%d row(s)).", title, len(table))
