"""Process-wide logging setup.

Components log through a `logging.Logger` handed to them (defaulting to their
module logger). This module configures the `stdfprr` logger tree once at
startup and tears it down at exit.
"""

from __future__ import annotations

import logging
import time

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "stdfprr"

_installed: list[logging.Handler] = []


class _FileFormatter(logging.Formatter):
    """`[2025/02/27 13:41:21.123] [INFO    ] [scanner] message`"""

    def format(self, record: logging.LogRecord) -> str:
        stamp = time.strftime("%Y/%m/%d %H:%M:%S", time.localtime(record.created))
        stamp = f"{stamp}.{int(record.msecs):03d}"
        component = record.name.rsplit(".", 1)[-1]
        line = f"[{stamp}] [{record.levelname:<8}] [{component}] {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def parse_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level '{level}'")
    return value


def configure_logging(
    level: str | int = "INFO",
    log_file: str | None = None,
    *,
    console: Console | None = None,
) -> logging.Logger:
    """Install console (rich) and optional file handlers on the package logger.

    Calling it again replaces the handlers from the previous call.
    """
    shutdown_logging()
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(parse_level(level))
    logger.propagate = False

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        log_time_format="%Y/%m/%d %H:%M:%S",
    )
    _installed.append(rich_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(_FileFormatter())
        _installed.append(file_handler)

    for handler in _installed:
        logger.addHandler(handler)
    return logger


def shutdown_logging() -> None:
    """Detach and close handlers installed by `configure_logging`."""
    logger = logging.getLogger(ROOT_LOGGER)
    while _installed:
        handler = _installed.pop()
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
