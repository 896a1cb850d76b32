"""
Logging configuration for OpenDW.

Every module logs through `logging.getLogger(__name__)`, so all records go
through the `opendw` logger. Nothing is printed unless the application
configures logging, either on its own or with setup_logging().

Example:
    >>> from opendw.logging_config import setup_logging
    >>> setup_logging("DEBUG", log_file="logs/opendw.log")
"""

import logging
import os
import sys
from typing import Optional, Union

from opendw.config import config

LOGGER_NAME = "opendw"

FILE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
CONSOLE_FORMAT = '%(levelname)-8s | %(name)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Library default: stay silent unless configured
logging.getLogger(LOGGER_NAME).addHandler(logging.NullHandler())


def setup_logging(
    level: Optional[Union[str, int]] = None,
    log_file: Optional[str] = None,
    enable_console: bool = True,
) -> logging.Logger:
    """
    Configure the `opendw` logger.

    Calling it again replaces the handlers installed by a previous call.

    Args:
        level: Logging level name or number (default: config.log_level)
        log_file: Also write records to this file
        enable_console: Write records to stderr

    Returns:
        The configured `opendw` logger
    """
    if level is None:
        level = config.log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, "_opendw_handler", False):
            logger.removeHandler(handler)
            handler.close()

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(fmt=CONSOLE_FORMAT))
        console_handler._opendw_handler = True
        logger.addHandler(console_handler)

    if log_file:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=DATE_FORMAT))
        file_handler._opendw_handler = True
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger below the `opendw` namespace."""
    if name == LOGGER_NAME or name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
