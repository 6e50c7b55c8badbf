"""Per-pass log file handling.

Every pass writes a fresh ``GIMBA.log``, preferably next to the document
or output directory being worked on and in the temp folder otherwise.
Modules log through ``logging.getLogger(__name__)``; :func:`begin`
attaches a file handler to the package logger for the duration of a pass.
"""

from __future__ import annotations

import logging
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FILENAME = "GIMBA.log"

_ROOT_LOGGER = "gimba"
_handler: Optional[logging.FileHandler] = None
_previous_level = logging.NOTSET

logger = logging.getLogger(__name__)


def _resolve_log_path(directory: Optional[Path]) -> Path:
    if directory is not None:
        directory = Path(directory)
        if directory.is_dir():
            return directory / LOG_FILENAME
    return Path(tempfile.gettempdir()) / LOG_FILENAME


def begin(name: str, directory: Optional[Path] = None) -> Path:
    """Start a new log for pass ``name`` and return the log file path."""
    global _handler, _previous_level
    end(quiet=True)

    path = _resolve_log_path(directory)
    handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger(_ROOT_LOGGER)
    root.addHandler(handler)
    _previous_level = root.level
    if root.level == logging.NOTSET or root.level > logging.INFO:
        root.setLevel(logging.INFO)
    _handler = handler

    logger.info("-" * 79)
    logger.info("Pass of %s, timestamp %s", name, datetime.now().strftime("%Y%m%d-%H%M%S"))
    return path


def end(quiet: bool = False) -> None:
    """Finish the current log, if any."""
    global _handler
    if _handler is None:
        return
    if not quiet:
        logger.info("")
        logger.info("Pass complete")
    root = logging.getLogger(_ROOT_LOGGER)
    root.removeHandler(_handler)
    root.setLevel(_previous_level)
    _handler.close()
    _handler = None


def current_log_path() -> Optional[Path]:
    if _handler is None:
        return None
    return Path(_handler.baseFilename)
