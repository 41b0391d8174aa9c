"""
Booking service module.
"""

from .service import BookingService, generate_confirmation_code
from .step_controller import BookingFlowController

__all__ = [
    "BookingService",
    "BookingFlowController",
    "generate_confirmation_code",
]
