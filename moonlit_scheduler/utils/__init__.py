"""
Utility modules for the Moonlit Scheduler.
"""

from .date import DateParser
from .logging import configure_logging, get_logger
from .validation import ValidationUtils

__all__ = [
    "DateParser",
    "ValidationUtils",
    "configure_logging",
    "get_logger",
]
