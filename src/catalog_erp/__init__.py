"""Catalog ERP package.

The package logger ``catalog_erp`` writes to a rotating file and to stderr.
Importing the package installs the default handlers; once ``config.ini`` has
been read, :func:`configure_logging` swaps them for the ``[Logging]`` level
and directory.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union


PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_LOG_DIR = PROJECT_ROOT / ".logs"
LOG_FILE_NAME = "catalog_erp.log"
LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

log = logging.getLogger(__name__)


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def configure_logging(level: Union[int, str] = logging.INFO, log_dir: Optional[Path] = None) -> logging.Logger:
    """Replace the package handlers with a file handler and a stderr handler.

    Calling it again closes the handlers installed by the previous call, so
    the log file can move between configurations within one process. When
    the log directory cannot be created the file handler is skipped and only
    stderr logging remains.

    Args:
        level: Logging level name (``"DEBUG"``) or number.
        log_dir: Directory for ``catalog_erp.log``; defaults to ``.logs`` at
            the project root.

    Raises:
        ValueError: If ``level`` is not a known level name.
    """

    numeric_level = _resolve_level(level)
    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()

    log.setLevel(numeric_level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    target = Path(log_dir) if log_dir is not None else DEFAULT_LOG_DIR
    try:
        target.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            target / LOG_FILE_NAME,
            maxBytes=1_000_000,
            backupCount=5,
            encoding="utf-8",
        )
    except OSError as exc:
        print(f"Warning: could not open catalog log file in '{target}': {exc}", file=sys.stderr)
    else:
        file_handler.setFormatter(formatter)
        log.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    log.addHandler(console_handler)
    return log


configure_logging()
