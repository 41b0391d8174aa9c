"""
Starlette middleware applied to every booking API response.
"""

from .logging import LoggingMiddleware
from .security import SecurityHeaders, DEFAULT_SECURITY_HEADERS

__all__ = [
    "DEFAULT_SECURITY_HEADERS",
    "LoggingMiddleware",
    "SecurityHeaders",
]
