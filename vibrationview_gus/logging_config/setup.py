"""Logging setup: file and console output with one shared format."""

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers of libraries that are too chatty at DEBUG
THIRD_PARTY_LOGGERS = ["win32com", "pythoncom", "yaml"]

_installed_handlers: list[logging.Handler] = []


def setup_logging(
    log_file: str | Path = "vibrationview_gus.log",
    log_level: str = "INFO",
) -> list[logging.Handler]:
    """
    Configure the root logger.

    Installs a file handler and a stderr console handler. Handlers installed
    by an earlier call are removed and closed first.

    Args:
        log_file: Path of the log file
        log_level: Level name for the root logger

    Returns:
        The installed handlers
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    root = logging.getLogger()

    for handler in _installed_handlers:
        root.removeHandler(handler)
        handler.close()
    _installed_handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)

    for handler in (file_handler, console_handler):
        root.addHandler(handler)
        _installed_handlers.append(handler)
    root.setLevel(level)

    if level == logging.DEBUG:
        for name in THIRD_PARTY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    return list(_installed_handlers)
