"""Logging setup for visitor analytics.

Every module logs through ``logging.getLogger(__name__)`` below the
``visitor_analytics`` package logger, so handlers are only attached there.
Console output goes to stdout; the ``logging`` section of the config can add
a log file. The HTTP client's per-request lines are kept at WARNING unless
debugging.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from visitor_analytics.utils.config import LoggingConfig

PACKAGE_LOGGER = "visitor_analytics"
HTTP_CLIENT_LOGGERS = ("httpx", "httpcore")

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(
    name: str,
    log_file: Optional[str] = None,
    level: str = "INFO",
) -> logging.Logger:
    """Attach console and file handlers to a named logger.

    A repeat call for the same name keeps the existing handlers and only
    moves them to the new level.

    Args:
        name: Logger name, normally ``PACKAGE_LOGGER``.
        log_file: Optional log file; parent directories are created.
        level: Level name. Unknown names fall back to INFO.

    Returns:
        The configured logger.
    """
    logger = logging.getLogger(name)
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(numeric_level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(numeric_level)
        return logger

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def configure_logging(config: LoggingConfig, verbose: bool = False) -> logging.Logger:
    """Set up the package logger from the ``logging`` config section.

    Args:
        config: Level and optional log file.
        verbose: Force DEBUG, including the HTTP client's request lines.

    Returns:
        The package logger.
    """
    level = "DEBUG" if verbose else config.level
    for name in HTTP_CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)
    return setup_logger(PACKAGE_LOGGER, log_file=config.file, level=level)
