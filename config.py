"""
config.py
---------
Centralised configuration management for the schema export tool.

Loads settings from environment variables (with .env file support via
python-dotenv). Provides typed settings as frozen dataclasses so
configuration is immutable at runtime.

Design Decision:
    Using a dataclass with class-level defaults means the tool works
    "out of the box" without any .env file, while still allowing
    environment-based overrides.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

_env_path = Path(__file__).parent / ".env"
if _env_path.exists():
    load_dotenv(dotenv_path=_env_path)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class DatabaseConfig:
    """Source database connection settings."""
    host: str = field(default_factory=lambda: os.getenv("DB_HOST", "localhost"))
    port: int = field(default_factory=lambda: int(os.getenv("DB_PORT", "3306")))
    charset: str = field(default_factory=lambda: os.getenv("DB_CHARSET", "utf8mb4"))
    connect_timeout: int = field(
        default_factory=lambda: int(os.getenv("DB_CONNECT_TIMEOUT", "10"))
    )
    # Username / password are NOT stored here; they are supplied at runtime
    # on the command line or via the password prompt.


@dataclass(frozen=True)
class ExportConfig:
    """Script and schema-log output settings."""
    include_data: bool = field(
        default_factory=lambda: _env_flag("EXPORT_INCLUDE_DATA", "true")
    )
    output_dir: Path = field(
        default_factory=lambda: Path(os.getenv("EXPORT_OUTPUT_DIR", "."))
    )
    schema_log_name: str = field(
        default_factory=lambda: os.getenv("SCHEMA_LOG_NAME", "Migration-Log.txt")
    )
    currency_symbol: str = field(
        default_factory=lambda: os.getenv("SCHEMA_LOG_CURRENCY", "$")
    )
    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper()
    )
    log_file: str | None = field(
        default_factory=lambda: os.getenv("LOG_FILE")  # None → log to stderr only
    )


@dataclass(frozen=True)
class AppConfig:
    """Root application configuration."""
    db: DatabaseConfig = field(default_factory=DatabaseConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    app_name: str = "Schema Export Tool"
    app_version: str = "1.0.0"


def load_config() -> AppConfig:
    """
    Build and return the application configuration.

    Returns:
        AppConfig: Fully populated (and frozen) configuration object.

    Example::

        cfg = load_config()
        print(cfg.db.host)              # "localhost"
        print(cfg.export.include_data)  # True
    """
    return AppConfig()


# Module-level singleton used throughout the application
CONFIG: AppConfig = load_config()


def get_log_level() -> int:
    """Convert string log level from config to logging module constant."""
    level = getattr(logging, CONFIG.export.log_level, None)
    if not isinstance(level, int):
        return logging.INFO
    return level
