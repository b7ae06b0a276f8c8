"""Project-wide logging configuration for **media_scout**.

Highlights
----------
* Unified format for console and optional file output (with rotation).
* Single, importable instance :data:`logger` – simply::

      from media_scout.logger import logger
      logger.info("Crawl started")
* Re-configurable at runtime via :func:`configure`.
* Dedicated line-oriented logs (capture log, crawl log) via
  :func:`setup_simple_log`.
"""
from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Union

# --------------------------------------------------------------------------- #
# Constants & basic types                                                     #
# --------------------------------------------------------------------------- #

_DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_LOGGER_NAME: Final[str] = "MediaScout"
_SIMPLE_LOG_PREFIX: Final[str] = "MediaScout.simple"

_LevelT = Union[int, str]


# --------------------------------------------------------------------------- #
# Helper builders                                                             #
# --------------------------------------------------------------------------- #


def _stdout_handler(fmt: str) -> logging.StreamHandler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _file_handler(file: Path | str, fmt: str) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=str(file),
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(fmt))
    return handler


class _IsoUtcFormatter(logging.Formatter):
    """``2026-10-18T09:55:01.123Z message`` – one event per line, no level."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(message)s")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return stamp.strftime("%Y-%m-%dT%H:%M:%S.") + f"{stamp.microsecond // 1000:03d}Z"


# --------------------------------------------------------------------------- #
# Public API                                                                  #
# --------------------------------------------------------------------------- #


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = _DEFAULT_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """(Re)configure the global project logger.

    Parameters
    ----------
    level
        Numeric or textual logging level (e.g. ``"DEBUG"``).
    log_file
        Path to a logfile. *None* → console-only output.
    log_format
        Format string for :class:`logging.Formatter`.
    replace_handlers
        *True* – remove existing handlers; *False* – just append new one(s).
    """
    lg = logging.getLogger(_LOGGER_NAME)
    lg.setLevel(level)

    if replace_handlers:
        lg.handlers.clear()

    lg.addHandler(_stdout_handler(log_format))

    if log_file is not None:
        lg.addHandler(_file_handler(log_file, log_format))

    lg.propagate = False
    return lg


def init_logging(
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = _DEFAULT_FORMAT,
) -> logging.Logger:
    """Configure the project logger, replacing any previous handlers."""
    return configure(level=level, log_file=log_file, log_format=log_format, replace_handlers=True)


def get_logger(component: str) -> logging.Logger:
    """Child of the project logger, e.g. ``MediaScout.runner``."""
    return logging.getLogger(f"{_LOGGER_NAME}.{component}")


def setup_simple_log(name: str, directory: str | Path) -> logging.Logger:
    """Return a logger appending plain timestamped lines to ``<directory>/<name>.log``.

    Calling it again for the same *name* swaps the file handler, so a log can be
    re-pointed at another directory (tests do this with ``tmp_path``).
    """
    path = Path(directory).expanduser()
    path.mkdir(parents=True, exist_ok=True)

    lg = logging.getLogger(f"{_SIMPLE_LOG_PREFIX}.{name}")
    for old in list(lg.handlers):
        lg.removeHandler(old)
        old.close()

    handler = logging.FileHandler(path / f"{name}.log", encoding="utf-8")
    handler.setFormatter(_IsoUtcFormatter())
    lg.addHandler(handler)
    lg.setLevel(logging.INFO)
    lg.propagate = False
    return lg


# --------------------------------------------------------------------------- #
# Ready-to-use instance                                                       #
# --------------------------------------------------------------------------- #

logger: logging.Logger = logging.getLogger(_LOGGER_NAME)

__all__ = ["logger", "configure", "init_logging", "get_logger", "setup_simple_log"]
