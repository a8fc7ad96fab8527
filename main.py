"""
main.py
-------
Command-line entry point.

Connects to a MySQL database, writes a schema log documenting its
metadata and a SQL script that recreates its tables (and, unless
``--schema-only`` is given, their rows) on a SQLite-style engine.

Usage::

    python main.py finance --user root
    python main.py finance --user root --output-dir out --schema-only

The script ``<output-dir>/<database>.sql`` is overwritten on every run.
"""
from __future__ import annotations

import argparse
import getpass
import sys
from pathlib import Path

from config import CONFIG
from core.database import DatabaseError, DatabaseManager
from core.exporter import build_and_generate
from core.metadata_logger import MetadataLogger
from core.script_generator import ScriptWriteError
from logger import get_logger

log = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schema-export",
        description=f"{CONFIG.app_name} v{CONFIG.app_version}: document a MySQL "
                    "database and script it for a SQLite-style engine.",
    )
    parser.add_argument("database", help="Name of the MySQL database to export.")
    parser.add_argument("--user", "-u", required=True, help="MySQL user name.")
    parser.add_argument(
        "--password", "-p", default=None,
        help="MySQL password (prompted for when omitted).",
    )
    parser.add_argument("--host", default=CONFIG.db.host)
    parser.add_argument("--port", type=int, default=CONFIG.db.port)
    parser.add_argument(
        "--output-dir", "-o", type=Path, default=CONFIG.export.output_dir,
        help="Directory for the SQL script and schema log.",
    )
    data = parser.add_mutually_exclusive_group()
    data.add_argument(
        "--schema-only", dest="include_data", action="store_false",
        help="Write table definitions only, no INSERT statements.",
    )
    data.add_argument(
        "--with-data", dest="include_data", action="store_true",
        help="Include INSERT statements for every row.",
    )
    parser.set_defaults(include_data=CONFIG.export.include_data)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    password = args.password if args.password is not None else getpass.getpass("MySQL password: ")

    output_dir: Path = args.output_dir
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        log.error("Cannot create output directory '%s': %s", output_dir, exc)
        return 1

    script_path = output_dir / f"{args.database}.sql"
    metadata_log = MetadataLogger(output_dir / CONFIG.export.schema_log_name)

    db = DatabaseManager(
        host=args.host,
        port=args.port,
        user=args.user,
        password=password,
        database=args.database,
        charset=CONFIG.db.charset,
        connect_timeout=CONFIG.db.connect_timeout,
    )
    try:
        with db:
            result = build_and_generate(
                metadata_provider=db,
                data_provider=db,
                output_destination=script_path,
                include_data=args.include_data,
                metadata_log=metadata_log,
            )
    except DatabaseError as exc:
        log.error("%s", exc)
        return 1
    except ScriptWriteError as exc:
        log.error("%s", exc)
        return 1

    print(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
