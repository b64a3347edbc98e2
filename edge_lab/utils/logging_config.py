"""Logging setup for the edge_lab command-line tools.

Library modules only create named loggers under "edge_lab"; handlers are
attached here, once, by the entry points.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

PACKAGE_LOGGER = "edge_lab"

CONSOLE_FORMAT = '%(levelname)s %(name)s: %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s'


def setup_logging(
    log_level: str = "WARNING",
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
) -> logging.Logger:
    """Attach console (and optionally file) handlers to the package logger.

    The console gets a short format on stderr so it doesn't interleave
    with the tables printed on stdout. A log file always records DEBUG and
    above with timestamps, whatever the console level.

    Args:
        log_level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path; parent directories are created
        log_format: Override for the console format

    Returns:
        The "edge_lab" logger

    Raises:
        ValueError: If log_level isn't a known level name

    Example:
        >>> setup_logging("INFO", log_file="logs/simulation.log")
        >>> logging.getLogger("edge_lab.runner").info("Batch of %d paths", 10000)
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.handlers.clear()
    logger.setLevel(logging.DEBUG if log_file else level)
    logger.propagate = False

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(log_format or CONSOLE_FORMAT))
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, mode='a')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        logger.addHandler(file_handler)

    # numpy RuntimeWarnings (overflow in exp, etc.) land in the same handlers
    logging.captureWarnings(True)
    warnings_logger = logging.getLogger("py.warnings")
    warnings_logger.handlers = list(logger.handlers)
    warnings_logger.propagate = False

    return logger
