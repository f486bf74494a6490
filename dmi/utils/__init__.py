# dmi/utils/__init__.py
"""
Utility functions and classes for the application.
"""

from dmi.utils.logging import get_logger, setup_logging
from dmi.utils.performance import timed_execution

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # Performance
    "timed_execution",
]
