"""Logging setup for nexuslauncher.

Everything under the ``nexuslauncher`` logger goes to stderr (and an
optional file). Uvicorn's own loggers are brought to the same level so a
``-v`` run shows request handling next to orchestration steps.
"""

from __future__ import annotations

import logging
import sys

from nexuslauncher.config.settings import LoggingConfig

PACKAGE_LOGGER = "nexuslauncher"
SERVER_LOGGERS = ("uvicorn", "uvicorn.error")


def setup_logging(config: LoggingConfig | None = None) -> logging.Logger:
    """Configure the package logger from ``config``.

    Safe to call more than once: handlers installed by a previous call are
    replaced rather than stacked.

    Args:
        config: Logging configuration. If None, uses defaults
                (INFO level, stderr output).
    """
    if config is None:
        config = LoggingConfig()

    level = getattr(logging, config.level.upper(), logging.INFO)
    formatter = logging.Formatter(config.format)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)

    if config.file:
        file_handler = logging.FileHandler(config.file)
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    for name in SERVER_LOGGERS:
        logging.getLogger(name).setLevel(level)

    package_logger.info("Logging initialized at %s level", config.level.upper())
    return package_logger
