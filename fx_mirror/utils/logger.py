"""Logging utilities for the fx_mirror package."""

from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LOGGER: Optional[logging.Logger] = None
_FILE_HANDLER_MARKER = "_fx_mirror_handler"


def get_logger(name: str = "fx_mirror") -> logging.Logger:
    """Return a module-level logger configured with a simple formatter."""
    global _LOGGER
    if _LOGGER is None:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt=DATE_FORMAT)
        _LOGGER = logging.getLogger(name)
    return logging.getLogger(name)


def configure_logging(level: int | str = logging.INFO, log_dir: str | Path | None = None) -> None:
    """Set the package log level and optionally attach file sinks.

    With ``log_dir`` three files are written: ``application.log`` (rotated every
    30 days, twelve archives kept), ``info.log`` and ``error.log`` (ERROR and
    above). Calling this again replaces the file handlers added previously.
    """

    get_logger()
    package_logger = logging.getLogger("fx_mirror")
    package_logger.setLevel(level)

    for handler in list(package_logger.handlers):
        if getattr(handler, _FILE_HANDLER_MARKER, False):
            package_logger.removeHandler(handler)
            handler.close()

    if log_dir is None:
        return

    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    rotating = TimedRotatingFileHandler(
        directory / "application.log",
        when="D",
        interval=30,
        backupCount=12,
        encoding="utf-8",
    )
    info = logging.FileHandler(directory / "info.log", encoding="utf-8")
    error = logging.FileHandler(directory / "error.log", encoding="utf-8")
    error.setLevel(logging.ERROR)

    for handler in (rotating, info, error):
        handler.setFormatter(formatter)
        setattr(handler, _FILE_HANDLER_MARKER, True)
        package_logger.addHandler(handler)


__all__ = ["configure_logging", "get_logger"]
