"""
Booking service for creating appointments from a finished draft.
"""

import hashlib
import json
import secrets
import string
from typing import Any, Dict, List, Optional

from ...config import Settings, get_settings
from ...core.enums import BookingScenario, BookingStep
from ...core.exceptions import (
    BookingValidationError,
    DatabaseRequestError,
    SlotUnavailableError,
    SubmissionError,
)
from ...core.models import BookingDraft, BookingResult
from ...utils.logging import get_logger
from ..external import HostedDatabaseService

logger = get_logger(__name__)

CONFIRMATION_CODE_ALPHABET = string.ascii_uppercase + string.digits
CONFIRMATION_CODE_LENGTH = 6


def generate_confirmation_code(length: int = CONFIRMATION_CODE_LENGTH) -> str:
    """Short code the patient can quote when calling the clinic."""
    return "".join(secrets.choice(CONFIRMATION_CODE_ALPHABET) for _ in range(length))


class BookingService:
    """Service for handling appointment bookings."""

    def __init__(self, database: HostedDatabaseService, settings: Optional[Settings] = None):
        self.database = database
        self.settings = settings or get_settings()

    @staticmethod
    def missing_fields(draft: BookingDraft) -> List[str]:
        """Fields that must be present before a booking can be created."""
        required = {
            "provider_id": draft.provider_id,
            "slot": draft.slot,
            "first_name": draft.first_name,
            "last_name": draft.last_name,
            "date_of_birth": draft.date_of_birth,
            "phone": draft.phone,
            "payer_id": draft.payer_id,
        }
        return [name for name, value in required.items() if not value]

    def build_appointment_row(self, draft: BookingDraft, confirmation_code: str) -> Dict[str, Any]:
        """Shape the draft into an ``appointments`` row."""
        scenario = draft.booking_scenario or BookingScenario.SELF
        cash = draft.is_cash_payment()

        notes = f"Booking scenario: {scenario.value}"
        case_manager_info = None
        if scenario != BookingScenario.SELF:
            case_manager_info = {
                "name": draft.requester_name,
                "email": draft.requester_email,
                "phone": draft.requester_phone,
                "organization": draft.requester_organization,
            }
            notes += f" | Case manager: {draft.requester_name} ({draft.requester_email})"

        return {
            "provider_id": draft.provider_id,
            "payer_id": None if cash else draft.payer_id,
            "start_time": draft.slot.start_time.isoformat(),
            "end_time": draft.slot.end_time.isoformat(),
            "timezone": self.settings.timezone,
            "patient_info": {
                "first_name": draft.first_name,
                "last_name": draft.last_name,
                "date_of_birth": draft.date_of_birth,
                "email": draft.email,
                "phone": draft.phone,
            },
            "insurance_info": None if cash else {
                "payer_name": draft.payer_name,
                "member_id": draft.member_id,
                "group_number": draft.group_number,
            },
            "booking_scenario": scenario.value,
            "case_manager_info": case_manager_info,
            "communication_preferences": {
                "send_to_patient": draft.send_to_patient,
                "send_to_case_manager": draft.send_to_case_manager,
            },
            "appointment_type": "telehealth",
            "status": "scheduled",
            "booking_source": "widget",
            "confirmation_code": confirmation_code,
            "notes": notes,
        }

    def build_idempotency_key(self, draft: BookingDraft) -> str:
        """Build idempotency key for booking to prevent duplicates."""
        raw = {
            "provider": draft.provider_id,
            "payer": draft.payer_id,
            "start": draft.slot.start_time.isoformat() if draft.slot else None,
            "patient": {
                "first": (draft.first_name or "").strip().lower(),
                "last": (draft.last_name or "").strip().lower(),
                "dob": draft.date_of_birth,
                "phone": draft.phone,
            },
        }
        return hashlib.sha256(
            json.dumps(raw, ensure_ascii=False, sort_keys=True).encode("utf-8")
        ).hexdigest()

    async def create_booking(self, draft: BookingDraft) -> BookingResult:
        """Create the appointment for a finished draft."""
        missing = self.missing_fields(draft)
        if missing:
            raise BookingValidationError(
                "The booking is missing required information",
                step=BookingStep.CONFIRM,
                fields=missing,
            )

        code = generate_confirmation_code()
        row = self.build_appointment_row(draft, code)
        headers = {"Idempotency-Key": self.build_idempotency_key(draft)}

        try:
            stored = await self.database.insert("appointments", row, extra_headers=headers)
        except DatabaseRequestError as e:
            if e.status_code == 409:
                raise SlotUnavailableError(
                    "Sorry, that time was just taken. Please pick another slot.",
                    step=BookingStep.CONFIRM,
                    fields=["slot"],
                ) from e
            raise SubmissionError(
                "We couldn't create your appointment. Please try again.",
                step=BookingStep.CONFIRM,
            ) from e

        booking_id = stored.get("id")
        if not booking_id:
            raise SubmissionError(
                "The appointment was not confirmed by the server. Please try again.",
                step=BookingStep.CONFIRM,
            )

        logger.info("appointment %s created with provider %s", booking_id, draft.provider_id)
        return BookingResult(
            booking_id=str(booking_id),
            confirmation_code=stored.get("confirmation_code") or code,
            appointment=stored,
        )
