"""
Booking-related enums.
"""

from enum import Enum


class BookingStep(str, Enum):
    """Enumeration of the booking wizard steps."""

    WELCOME = "welcome"
    ON_BEHALF_OF = "on_behalf_of"
    IDENTITY = "identity"
    PAYER = "payer"
    PROVIDER = "provider"
    SLOT = "slot"
    CONFIRM = "confirm"
    SUBMITTED = "submitted"
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        return self in (BookingStep.SUBMITTED, BookingStep.ABANDONED)


class BookingScenario(str, Enum):
    """Who is making the booking."""

    SELF = "self"
    REFERRAL = "referral"
    CASE_MANAGER = "case_manager"


class PayerAcceptance(str, Enum):
    """Whether a payer can be booked against right now."""

    ACTIVE = "active"
    FUTURE = "future"
    WAITLIST = "waitlist"
    NOT_ACCEPTED = "not_accepted"

    @property
    def priority(self) -> int:
        """Sort key: bookable payers first."""
        return _ACCEPTANCE_PRIORITY[self]


_ACCEPTANCE_PRIORITY = {
    PayerAcceptance.ACTIVE: 1,
    PayerAcceptance.FUTURE: 2,
    PayerAcceptance.WAITLIST: 3,
    PayerAcceptance.NOT_ACCEPTED: 4,
}
