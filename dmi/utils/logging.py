# dmi/utils/logging.py
"""
Logging utilities for the imputation package.

Methods:
    setup_logging: Configure logging for scripts using the package.
    get_logger: Get a logger instance namespaced under the package.
"""

# Standard Library Imports
import logging
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    log_level: Optional[str] = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    capture_warnings: bool = True,
) -> None:
    """
    Configure logging for the application.

    Args:
        log_level: Logging level (e.g., "INFO", "DEBUG", "WARNING", "ERROR", "CRITICAL").
        log_file: Path to the log file (optional).
        capture_warnings: Route ``warnings`` raised by numpy/scikit-learn
            through the logging system.
    """
    level = getattr(logging, log_level.upper()) if log_level else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=DATE_FORMAT)
    logging.captureWarnings(capture_warnings)
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logging.getLogger().addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Library modules never configure handlers themselves; a ``NullHandler`` is
    attached so that nothing is printed unless the caller calls
    :func:`setup_logging`.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return logger
