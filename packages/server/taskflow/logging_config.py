"""
Logging for the taskflow server.

Every line reads ``LEVEL: timestamp : location : message``, where location is
``server.<module>.<function>.<lineno>``:

    WARNING: 2024-03-01 09:12:44 : server.services.locks.hold.61 : Workspace ws_1 lock contention: gave up

Modules log through ``get_logger(__name__)``; ``setup_logging()`` runs once in
the application lifespan.
"""

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional, TextIO

PACKAGE = "taskflow"

# Third-party loggers that are only useful when debugging them directly.
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "alembic")


def _location(record: logging.LogRecord) -> str:
    """``server.<module>.<function>.<lineno>`` for package modules."""
    module = record.name
    if module == PACKAGE or module.startswith(PACKAGE + "."):
        module = "server" + module[len(PACKAGE):]

    filename = os.path.splitext(record.filename)[0]
    if not module.endswith(f".{filename}"):
        module = f"{module}.{filename}"
    return f"{module}.{record.funcName}.{record.lineno}"


class TaskflowFormatter(logging.Formatter):
    """Single-line records; tracebacks follow on the next lines."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        line = f"{record.levelname}: {timestamp} : {_location(record)} : {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def level_from_env(default: str = "INFO") -> int:
    name = os.getenv("LOG_LEVEL", default).upper()
    return getattr(logging, name, logging.INFO)


def setup_logging(level: Optional[int] = None, stream: Optional[TextIO] = None) -> None:
    """Install the server handler on the root logger.

    Replaces any existing root handlers, so calling it twice does not
    duplicate output.
    """
    if level is None:
        level = level_from_env()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(TaskflowFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    logging.getLogger(PACKAGE).setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
