"""
Custom exceptions for the Moonlit Scheduler.
"""

from .booking import (
    BookingFlowError,
    BookingValidationError,
    DirectoryFetchError,
    DraftVersionError,
    SlotUnavailableError,
    SubmissionError,
)
from .external import DatabaseRequestError, ExternalAPIError

__all__ = [
    "BookingFlowError",
    "BookingValidationError",
    "DirectoryFetchError",
    "DraftVersionError",
    "SlotUnavailableError",
    "SubmissionError",
    "DatabaseRequestError",
    "ExternalAPIError",
]
