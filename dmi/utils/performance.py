# dmi/utils/performance.py
"""
Performance utilities for the application.

Methods:
    timed_execution: Decorator to time function execution.
"""

# Standard Library Imports
import time
from functools import wraps
from logging import Logger
from typing import Any, Callable

# Internal Imports
from dmi.utils.logging import get_logger

# Initialize Logger
logger: Logger = get_logger(__name__)


def timed_execution(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator to time function execution.

    Args:
        func: Function to time

    Returns:
        Wrapped function that logs execution time at DEBUG level
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        start_time: float = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed: float = time.perf_counter() - start_time
            logger.debug(f"{func.__qualname__} executed in {elapsed:.4f} seconds")

    return wrapper
