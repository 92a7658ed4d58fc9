"""Centralized logging configuration for Game Shelf.

Modules log through named children of the ``gameshelf`` logger
(``gameshelf.sync``, ``gameshelf.igdb``, ...). The console handler writes to
stderr so command output on stdout stays machine-readable; the optional log
file keeps DEBUG output of past syncs and is rotated by size.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

__all__ = ["LOG_FORMAT", "logger", "setup_logging"]

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_MAX_LOG_BYTES = 2 * 1024 * 1024
_LOG_BACKUPS = 3

# Request-level chatter from requests' connection pool
_NOISY_LOGGERS = ("urllib3",)

logger = logging.getLogger("gameshelf")


def setup_logging(level: int = logging.INFO, log_file: Path | None = None) -> None:
    """Configure the gameshelf logger.

    Handlers are attached on the first call. Later calls only change the
    console level, so a ``--verbose`` flag can be applied after startup.

    Args:
        level: Console logging level.
        log_file: Optional log file; receives DEBUG and above.
    """
    # Handlers filter; the logger passes everything through
    logger.setLevel(logging.DEBUG)

    console = next((h for h in logger.handlers if getattr(h, "name", None) == "console"), None)
    if console is not None:
        console.setLevel(level)
        return

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%H:%M:%S")

    console = logging.StreamHandler(sys.stderr)
    console.set_name("console")
    console.setLevel(level)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file, maxBytes=_MAX_LOG_BYTES, backupCount=_LOG_BACKUPS, encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
