"""Logging setup for tether.

The same program runs as controller and as worker. On a worker, standard
output carries the framed protocol, so every console handler installed
here writes to standard error and nothing else.
"""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "tether"

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _console_handler(level: int) -> RichHandler:
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt="[%X]"))
    return handler


def _file_handler(log_file: Path) -> logging.FileHandler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    """Configure the ``tether`` logger.

    Args:
        level: Console logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file receiving every record at DEBUG level

    Returns:
        The configured ``tether`` logger
    """
    numeric_level = getattr(logging, level.upper())
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()

    logger.addHandler(_console_handler(numeric_level))
    if log_file:
        logger.addHandler(_file_handler(Path(log_file)))

    # The file handler sees DEBUG even when the console is quieter
    logger.setLevel(logging.DEBUG if log_file else numeric_level)
    return logger
