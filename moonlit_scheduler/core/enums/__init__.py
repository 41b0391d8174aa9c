"""
Enums for the Moonlit Scheduler.
"""

from .booking import BookingStep, BookingScenario, PayerAcceptance

__all__ = [
    "BookingStep",
    "BookingScenario",
    "PayerAcceptance",
]
