"""Logging configuration for pg-snapshot.

Log records go to stderr through rich's ``RichHandler`` so that a dump
written to the console (stdout) is never interleaved with diagnostics.

Usage:
    from pg_snapshot.logging_config import configure_logging, get_logger

    configure_logging(verbose=True)
    logger = get_logger(__name__)
"""

import logging
import logging.config
import os
from typing import Any

from rich.console import Console

LOG_LEVEL_ENV = "PG_SNAPSHOT_LOG_LEVEL"


def get_log_level(verbose: bool = False) -> str:
    """Get log level from environment variable or default to INFO."""
    if verbose:
        return "DEBUG"
    return os.getenv(LOG_LEVEL_ENV, "INFO").upper()


def get_logging_config(verbose: bool = False) -> dict[str, Any]:
    """Build the ``dictConfig`` mapping for the ``pg_snapshot`` logger tree."""
    log_level = get_log_level(verbose)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "rich": {
                "format": "%(message)s",
                "datefmt": "[%X]",
            },
        },
        "handlers": {
            "console": {
                "class": "rich.logging.RichHandler",
                "level": log_level,
                "formatter": "rich",
                "console": Console(stderr=True),
                "show_path": False,
            },
        },
        "loggers": {
            "pg_snapshot": {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False,
            },
            "psycopg": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {
            "level": "WARNING",
            "handlers": ["console"],
        },
    }


def configure_logging(verbose: bool = False) -> None:
    """Install the logging configuration for a CLI run."""
    logging.config.dictConfig(get_logging_config(verbose))
    get_logger("logging").debug("Logging configured with level: %s", get_log_level(verbose))


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``pg_snapshot`` hierarchy.

    Args:
        name: Logger name (typically ``__name__`` of the module).

    Returns:
        Logger instance.
    """
    if not name.startswith("pg_snapshot"):
        name = f"pg_snapshot.{name}"
    return logging.getLogger(name)
