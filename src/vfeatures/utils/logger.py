"""Logging setup for scripts using the library."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Marks handlers installed here so a second call can replace them
_HANDLER_TAG = "_vfeatures_handler"


def _remove_own_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            logger.removeHandler(handler)
            handler.close()


def setup_logger(
    name: str = "vfeatures",
    log_level: int = logging.INFO,
    log_file: str | Path | None = None,
) -> logging.Logger:
    """Attach a console handler, and optionally a file handler, to a logger.

    The library itself only creates module loggers under the "vfeatures"
    namespace and never installs handlers. Calling this again for the same
    logger replaces the handlers of the previous call instead of stacking
    new ones, so messages are never printed twice. Handlers added by other
    code are left alone.

    Args:
        name: Logger name
        log_level: Level for the logger and its handlers
        log_file: Optional path of a log file to write as well

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    _remove_own_handlers(logger)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_TAG, True)
        logger.addHandler(handler)

    return logger
