"""Console logging for processes embedding a sqlquest Connector."""

from __future__ import annotations

import json
import logging
import logging.config
import os

# Attributes every LogRecord carries; anything else arrived through `extra=`
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}
_UNSET_REQUEST_ID = "-"

DEFAULT_CONSOLE_FORMAT = "%(asctime)s %(levelname)-7s [%(request_id)s] %(name)s:%(lineno)d %(message)s"

# Driver, pool and event loop loggers held at WARNING unless sql_echo is set
_DRIVER_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "aiosqlite", "asyncio")


class RequestIdFilter(logging.Filter):
    """Default `request_id` to "-" so the format string can always use it."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = _UNSET_REQUEST_ID
        return True


class ExtrasFormatter(logging.Formatter):
    """Append `extra=` fields (backend, db_id, sql, ...) as one JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key != "request_id"
        }
        if extras:
            line = f"{line} {json.dumps(extras, default=str, sort_keys=True)}"
        return line


def configure_logging(*, log_level: str = "INFO", sql_echo: bool = False) -> None:
    """Send log records to stdout with the request id in every line.

    `CONSOLE_LOG_FORMAT` in the environment replaces DEFAULT_CONSOLE_FORMAT.

    Args:
        log_level: Minimum level printed
        sql_echo: Let SQLAlchemy engine statements through at INFO
    """
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"request_id": {"()": RequestIdFilter}},
            "formatters": {
                "console": {
                    "()": ExtrasFormatter,
                    "format": os.getenv("CONSOLE_LOG_FORMAT", DEFAULT_CONSOLE_FORMAT),
                }
            },
            "handlers": {
                "stdout": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stdout",
                    "level": log_level.upper(),
                    "formatter": "console",
                    "filters": ["request_id"],
                }
            },
            "loggers": {name: {"level": "WARNING"} for name in _DRIVER_LOGGERS},
            "root": {"level": "DEBUG", "handlers": ["stdout"]},
        }
    )
    logging.captureWarnings(True)
    if sql_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
