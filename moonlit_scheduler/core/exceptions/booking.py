"""
Booking-related exceptions.
"""

from typing import Any, Dict, List, Optional

from ..enums import BookingStep


class BookingFlowError(Exception):
    """Base exception for booking flow errors."""

    kind = "flow"
    retryable = False

    def __init__(
        self,
        message: str,
        *,
        step: Optional[BookingStep] = None,
        fields: Optional[List[str]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.step = step
        self.fields = list(fields or [])

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for display next to the step."""
        return {
            "kind": self.kind,
            "message": self.message,
            "step": self.step.value if self.step else None,
            "fields": self.fields,
            "retryable": self.retryable,
        }


class BookingValidationError(BookingFlowError):
    """Exception raised when a step's required fields are missing or invalid."""

    kind = "validation"


class SubmissionError(BookingFlowError):
    """Exception raised when the booking could not be created."""

    kind = "submission"
    retryable = True


class SlotUnavailableError(SubmissionError):
    """Exception raised when a booking slot is no longer available."""

    kind = "slot_unavailable"


class DirectoryFetchError(BookingFlowError):
    """Exception raised when a payer, provider or slot list could not be loaded."""

    kind = "fetch"
    retryable = True


class DraftVersionError(BookingFlowError):
    """Exception raised when a draft update was based on a stale version."""

    kind = "version_conflict"
