"""Debug logging with a fixed header: time, source location and level."""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from enum import IntEnum

LOG_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

_TRACE = 5
logging.addLevelName(_TRACE, "TRACE")


class LogLevel(IntEnum):
    """Severity levels; a message is shown when its level is at least the threshold."""

    ALL = 0
    TRACE = 100
    DEBUG = 200
    INFO = 300
    WARN = 400
    ERROR = 500
    OFF = 1000


_TAGS = {
    LogLevel.ERROR: "ERROR",
    LogLevel.WARN: "WARN ",
    LogLevel.INFO: "INFO ",
    LogLevel.DEBUG: "DEBUG",
    LogLevel.TRACE: "TRACE",
}

DEFAULT_LEVEL = LogLevel.DEBUG


def level_tag(level: int) -> str:
    """Return the five-character tag printed for ``level``."""
    return _TAGS.get(level, "UNKWN")


def _short_file(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def format_header(file: str, line: int, func: str, level: int, now: datetime | None = None) -> str:
    """Build the header put before every log message."""
    if now is None:
        now = datetime.now()
    stamp = now.strftime(LOG_TIME_FORMAT)
    return f"{stamp} [{_short_file(file)}:{line}:{func}] {level_tag(level)} - "


def _from_logging_level(levelno: int) -> LogLevel:
    if levelno >= logging.ERROR:
        return LogLevel.ERROR
    if levelno >= logging.WARNING:
        return LogLevel.WARN
    if levelno >= logging.INFO:
        return LogLevel.INFO
    if levelno >= logging.DEBUG:
        return LogLevel.DEBUG
    return LogLevel.TRACE


class _HeaderFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        header = format_header(
            record.pathname,
            record.lineno,
            record.funcName,
            _from_logging_level(record.levelno),
            datetime.fromtimestamp(record.created),
        )
        return header + record.getMessage()


def get_logger(name: str) -> logging.Logger:
    """Return a logger writing headed messages to standard output."""
    logger = logging.getLogger(name)
    if not any(isinstance(h.formatter, _HeaderFormatter) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(_HeaderFormatter())
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG if DEFAULT_LEVEL <= LogLevel.DEBUG else logging.INFO)
        logger.propagate = False
    return logger