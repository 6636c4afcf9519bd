"""
Logging setup, shared by the CLI and by embedders.

Every module logs through ``logging.getLogger(__name__)`` under the
``toolbridge`` namespace; this module decides where those records go.

Level precedence:
    CLI flag  >  TOOLBRIDGE_LOG_LEVEL  >  WARNING

TOOLBRIDGE_LOG_FILE adds a file handler that always writes full detail
(level from TOOLBRIDGE_LOG_FILE_LEVEL, else the console level).
"""

from __future__ import annotations

import logging
import os
import sys

LEVEL_ENV = "TOOLBRIDGE_LOG_LEVEL"
FILE_ENV = "TOOLBRIDGE_LOG_FILE"
FILE_LEVEL_ENV = "TOOLBRIDGE_LOG_FILE_LEVEL"

_DETAILED = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d | %(message)s"

# Console (threshold, format, date format); first threshold >= level wins.
_CONSOLE_FORMATS = (
    (logging.DEBUG, _DETAILED, "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
)
_PLAIN = "%(message)s"

# Slow callback and unclosed transport reports.
_NOISY_LOGGERS = ("asyncio",)


def resolve_level(cli_level: str | None = None) -> str:
    """Pick the console level: CLI flag, then environment, then WARNING."""
    return cli_level or os.environ.get(LEVEL_ENV) or "WARNING"


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = _PLAIN, None
    for threshold, threshold_fmt, threshold_datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            fmt, datefmt = threshold_fmt, threshold_datefmt
            break
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_DETAILED, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Configure the root logger for the whole process.

    Replaces any handlers already on the root logger, so calling it twice
    is safe.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional log file path.  Falls back to TOOLBRIDGE_LOG_FILE.
        log_file_level: Level for the file handler.  Defaults to ``level``.
        quiet_third_party: Hold noisy library loggers at WARNING unless
            running at DEBUG.
    """
    console_level = _parse_level(level)
    log_file = log_file or os.environ.get(FILE_ENV)
    log_file_level = log_file_level or os.environ.get(FILE_LEVEL_ENV)

    handlers = [_console_handler(console_level)]
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        handlers.append(_file_handler(log_file, file_level))

    root = logging.getLogger()
    root.handlers[:] = handlers
    root.setLevel(min(h.level for h in handlers))

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Level name to its numeric value; unknown names mean WARNING."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
