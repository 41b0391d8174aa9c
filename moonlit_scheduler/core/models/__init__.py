"""
Core data models for the Moonlit Scheduler.
"""

from .booking import BookingDraft, BookingDraftUpdate, BookingResult, WizardState
from .directory import CASH_PAYER_ID, Payer, Provider, ProviderFilter, TimeSlot

__all__ = [
    "BookingDraft",
    "BookingDraftUpdate",
    "BookingResult",
    "WizardState",
    "CASH_PAYER_ID",
    "Payer",
    "Provider",
    "ProviderFilter",
    "TimeSlot",
]
