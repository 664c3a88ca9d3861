"""
Logging setup for the cascadelab CLI.

Console output goes to stderr so JSON written to stdout stays parseable.
A rotating file under ``~/.cascadelab/logs`` keeps the full record of bulk
statements and rejected deletes; the ``[logging]`` config table can lower its
level, resize it, or switch it off.
"""

import logging
import logging.config
import sys

from pathlib import Path
from typing import Any

from cascadelab.constants import (
    DEFAULT_LOG_BACKUP_COUNT,
    DEFAULT_LOG_DIR,
    DEFAULT_LOG_FILE,
    DEFAULT_LOG_MAX_BYTES,
)

CONSOLE_FORMAT = "%(levelname)s: %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_logging_configured = False


def get_log_path() -> Path:
    """Path of the log file, creating its directory if needed."""
    DEFAULT_LOG_DIR.mkdir(mode=0o700, parents=True, exist_ok=True)
    return DEFAULT_LOG_DIR / DEFAULT_LOG_FILE


def _file_handler(settings: dict[str, Any]) -> dict[str, Any] | None:
    """Rotating file handler entry for the ``[logging]`` table, or None if disabled."""
    if not settings.get("enabled", True):
        return None

    max_size_mb = settings.get("max_size_mb")
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": str(settings.get("level", "DEBUG")).upper(),
        "formatter": "file",
        "filename": str(get_log_path()),
        "maxBytes": int(max_size_mb) * 1024 * 1024
        if max_size_mb
        else DEFAULT_LOG_MAX_BYTES,
        "backupCount": settings.get("backup_count", DEFAULT_LOG_BACKUP_COUNT),
        "encoding": "utf-8",
    }


def _build_logging_config(verbose: bool = False) -> dict[str, Any]:
    """Build the dictConfig dictionary from the ``[logging]`` config table."""
    from cascadelab.config import load_config

    settings = load_config().get("logging", {})
    if not isinstance(settings, dict):
        settings = {}

    handlers: dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": "DEBUG" if verbose else "INFO",
            "formatter": "console",
            "stream": "ext://sys.stderr",
        },
    }
    file_handler = _file_handler(settings)
    if file_handler is not None:
        handlers["file"] = file_handler

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"format": CONSOLE_FORMAT},
            "file": {"format": FILE_FORMAT},
        },
        "handlers": handlers,
        "root": {"level": "DEBUG", "handlers": list(handlers)},
        # SQL echo stays off unless raised here
        "loggers": {"sqlalchemy.engine": {"level": "WARNING"}},
    }


def setup_logging(*, verbose: bool = False) -> None:
    """
    Configure logging once per process.

    Falls back to a plain stderr configuration when the log file cannot be
    opened or the ``[logging]`` table holds unusable values.
    """
    global _logging_configured

    if _logging_configured:
        return

    try:
        logging.config.dictConfig(_build_logging_config(verbose=verbose))
    except (OSError, ValueError, TypeError) as e:
        sys.stderr.write(f"WARNING: Failed to configure logging: {e}\n")
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO, format=CONSOLE_FORMAT
        )

    _logging_configured = True
