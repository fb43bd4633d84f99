"""
Logging setup for the AKARI backend.

``setup_logging`` installs a console handler on the root logger, plus a
rotating file handler when ``AKARI_LOG_FILE`` is set, and pins the levels of
the chatty third-party loggers. Spans and traces are handled by Logfire in
``akari.core.monitoring``; this module only covers the stdlib loggers that
every AKARI module writes to through ``get_logger(__name__)``.

Formats:
- ``text``: one line per record, for local development
- ``detailed``: adds file, line and function, for debugging
- ``json``: one JSON object per record, for log shippers
"""

import json
import logging
import logging.config
from typing import Any, Dict, Optional

from akari.server.core.config import settings

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
DETAILED_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(filename)s:%(lineno)d %(funcName)s()]: %(message)s"

LOG_FORMATS = ("text", "detailed", "json")

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# Pinned regardless of AKARI_LOG_LEVEL
THIRD_PARTY_LEVELS = {
    "sqlalchemy.engine": "WARNING",
    "sqlalchemy.pool": "WARNING",
    "aiosqlite": "WARNING",
    "asyncpg": "WARNING",
    "httpx": "WARNING",
    "httpcore": "WARNING",
    "asyncio": "WARNING",
    "uvicorn.access": "INFO",
}


RESERVED_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """Renders a record as a single JSON object.

    Fields passed through ``extra`` are added next to the standard ones.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key not in RESERVED_RECORD_ATTRS:
                payload.setdefault(key, value)
        return json.dumps(payload, default=str)


def build_logging_config(level: str, log_format: str, log_file: Optional[str] = None) -> Dict[str, Any]:
    """The ``logging.config.dictConfig`` schema for the given options.

    An unknown format falls back to ``text``.
    """
    if log_format == "json":
        formatter: Dict[str, Any] = {"()": JsonFormatter}
    else:
        fmt = DETAILED_FORMAT if log_format == "detailed" else TEXT_FORMAT
        formatter = {"format": fmt, "datefmt": DATE_FORMAT}

    handlers: Dict[str, Dict[str, Any]] = {
        "console": {"class": "logging.StreamHandler", "level": level, "formatter": "default"},
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file,
            "maxBytes": LOG_FILE_MAX_BYTES,
            "backupCount": LOG_FILE_BACKUPS,
            "encoding": "utf-8",
            "level": "DEBUG",
            "formatter": "default",
        }

    loggers = {name: {"level": lvl} for name, lvl in THIRD_PARTY_LEVELS.items()}
    loggers["akari"] = {"level": level}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": formatter},
        "handlers": handlers,
        "root": {"level": "DEBUG", "handlers": list(handlers)},
        "loggers": loggers,
    }


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure logging for the application.

    Args:
        log_level: Overrides ``AKARI_LOG_LEVEL``
        log_format: Overrides ``AKARI_LOG_FORMAT`` (text, detailed, json)
        log_file: Overrides ``AKARI_LOG_FILE``; an empty string disables the file handler
    """
    level = (log_level or settings.log_level).upper()
    fmt = log_format or settings.log_format
    path = settings.log_file if log_file is None else log_file

    logging.config.dictConfig(build_logging_config(level, fmt, path))
    logging.getLogger(__name__).info(f"Logging configured: level={level}, format={fmt}, file={path or '-'}")


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, usually called with ``__name__``."""
    return logging.getLogger(name)
