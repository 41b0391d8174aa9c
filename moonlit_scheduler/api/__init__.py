"""
API layer for the Moonlit Scheduler.
"""

from .app import build_session_store, create_app
from .handlers import BookingHandler, HealthHandler
from .middleware import SecurityHeaders, LoggingMiddleware

__all__ = [
    "build_session_store",
    "create_app",
    "BookingHandler",
    "HealthHandler",
    "SecurityHeaders",
    "LoggingMiddleware",
]
