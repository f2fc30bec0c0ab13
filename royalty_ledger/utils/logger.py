"""Logging setup for the royalty ledger client."""

import logging
import sys
from pathlib import Path
from typing import Optional

LOGGER_NAME = "royalty_ledger"


class PathFilter(logging.Filter):
    """
    Tag every record with the ledger path that served it.

    The facade passes `extra={"path": "live"|"mock"}` on its routing lines;
    all other records get "-" so the format string always resolves.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "path", None):
            record.path = "-"
        return True


def setup_logger(
    name: str = LOGGER_NAME,
    level: int | str = logging.INFO,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Configure and return a logger.

    Args:
        name: Logger name.
        level: Logging level (int or level name such as "DEBUG").
        log_file: Optional path to log file. If None, logs to stderr only.

    Returns:
        Configured logger.
    """
    log = logging.getLogger(name)
    if log.handlers:
        return log

    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper())
        if not isinstance(level, int):
            level = logging.INFO
    log.setLevel(level)
    fmt = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(path)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    path_filter = PathFilter()
    h = logging.StreamHandler(sys.stderr)
    h.setFormatter(fmt)
    h.addFilter(path_filter)
    log.addHandler(h)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(fmt)
        fh.addFilter(path_filter)
        log.addHandler(fh)

    return log


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """Return the library logger. Use after setup_logger has been called."""
    return logging.getLogger(name)
