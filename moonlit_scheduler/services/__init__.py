"""
Service layer for the Moonlit Scheduler.
"""

from .booking import BookingFlowController, BookingService
from .directory import DirectoryService
from .external import HostedDatabaseService
from .session import SessionStore

__all__ = [
    "BookingFlowController",
    "BookingService",
    "DirectoryService",
    "HostedDatabaseService",
    "SessionStore",
]
