"""
Logging setup for pharmacy_match.

All modules log through children of the ``pharmacy_match`` logger. Importing
the package attaches no output handler; records propagate to whatever the host
application configured. Entry points (the CLI and scripts) call
:func:`configure_logging` to get console output.
"""

import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "pharmacy_match"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())


def configure_logging(level: str = "INFO", stream=None) -> logging.Logger:
    """
    Attach a single stream handler to the package root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        stream: Output stream (default: stdout)

    Returns:
        The package root logger
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(getattr(logging, level.upper()))
    root.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)
    root.propagate = False
    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger under the package root.

    Args:
        name: Dotted module name; names outside the package are nested under it

    Returns:
        logging.Logger instance
    """
    if not name or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def reset_logging() -> None:
    """Undo configure_logging: drop the console handler and propagate again (useful for testing)."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.handlers.clear()
    root.addHandler(logging.NullHandler())
    root.setLevel(logging.NOTSET)
    root.propagate = True
