"""
Booking-related data models.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict

from ..enums import BookingScenario, BookingStep, PayerAcceptance
from .directory import CASH_PAYER_ID, Payer, Provider, TimeSlot


@dataclass
class BookingDraft:
    """In-progress appointment request accumulated across wizard steps."""

    # Intent
    requester_is_self: Optional[bool] = None
    booking_scenario: Optional[BookingScenario] = None

    # Person booking on the patient's behalf (referral / case manager)
    requester_name: Optional[str] = None
    requester_email: Optional[str] = None
    requester_phone: Optional[str] = None
    requester_organization: Optional[str] = None

    # Patient identity and contact
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[str] = None  # YYYY-MM-DD
    phone: Optional[str] = None
    email: Optional[str] = None

    # Insurance
    payer_id: Optional[str] = None
    payer_name: Optional[str] = None
    payer_acceptance: Optional[PayerAcceptance] = None
    member_id: Optional[str] = None
    group_number: Optional[str] = None

    # Provider and slot
    provider_id: Optional[str] = None
    provider_name: Optional[str] = None
    slot: Optional[TimeSlot] = None

    # Communication preferences
    send_to_patient: bool = True
    send_to_case_manager: bool = False

    # Versioning
    version: int = 0

    def patient_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    def is_cash_payment(self) -> bool:
        return self.payer_id == CASH_PAYER_ID

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly view of the draft."""
        return {
            "requester_is_self": self.requester_is_self,
            "booking_scenario": self.booking_scenario.value if self.booking_scenario else None,
            "requester_name": self.requester_name,
            "requester_email": self.requester_email,
            "requester_phone": self.requester_phone,
            "requester_organization": self.requester_organization,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "date_of_birth": self.date_of_birth,
            "phone": self.phone,
            "email": self.email,
            "payer_id": self.payer_id,
            "payer_name": self.payer_name,
            "payer_acceptance": self.payer_acceptance.value if self.payer_acceptance else None,
            "member_id": self.member_id,
            "group_number": self.group_number,
            "provider_id": self.provider_id,
            "provider_name": self.provider_name,
            "slot": self.slot.model_dump(mode="json") if self.slot else None,
            "send_to_patient": self.send_to_patient,
            "send_to_case_manager": self.send_to_case_manager,
            "version": self.version,
        }


@dataclass
class WizardState:
    """Step position and per-step validity, owned by one flow controller."""

    step: BookingStep = BookingStep.WELCOME
    completed: Dict[BookingStep, bool] = field(default_factory=dict)
    error: Optional[Any] = None  # BookingFlowError

    # Name of the dependent fetch in flight ("payers", "providers", "slots")
    loading: Optional[str] = None
    submitting: bool = False

    # Options loaded for the steps to render
    payers: Optional[List[Payer]] = None
    payer_results: Optional[List[Payer]] = None
    providers: Optional[List[Provider]] = None
    slots: Optional[List[TimeSlot]] = None
    slots_date: Optional[str] = None

    # Filled in once the booking is created
    booking_id: Optional[str] = None
    confirmation_code: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.step.is_terminal

    @property
    def busy(self) -> bool:
        return self.loading is not None or self.submitting


class BookingDraftUpdate(BaseModel):
    """Model for updating booking draft fields."""

    model_config = ConfigDict(extra="forbid")

    requester_name: Optional[str] = None
    requester_email: Optional[str] = None
    requester_phone: Optional[str] = None
    requester_organization: Optional[str] = None

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    payer_id: Optional[str] = None
    member_id: Optional[str] = None
    group_number: Optional[str] = None

    provider_id: Optional[str] = None
    # ISO start time of one of the loaded slots
    slot_start: Optional[str] = None

    send_to_patient: Optional[bool] = None
    send_to_case_manager: Optional[bool] = None


class BookingResult(BaseModel):
    """Outcome of a successful booking creation."""

    model_config = ConfigDict(extra="forbid")

    booking_id: str
    confirmation_code: str
    appointment: Dict[str, Any] = {}
