"""
Step controller for the booking wizard.

All step sequencing, skip logic and per-step validation live here; handlers
only forward user input. Validation and fetch failures are recorded on
``state.error`` instead of being raised, so the caller can render them next
to the step and retry.
"""

from __future__ import annotations

from dataclasses import fields as dataclass_fields, replace
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from ...core.enums import BookingScenario, BookingStep, PayerAcceptance
from ...core.exceptions import (
    BookingFlowError,
    BookingValidationError,
    DraftVersionError,
    SubmissionError,
)
from ...core.models import (
    BookingDraft,
    BookingDraftUpdate,
    Payer,
    ProviderFilter,
    TimeSlot,
    WizardState,
)
from ...utils.date import DateParser
from ...utils.logging import get_logger
from ...utils.validation import ValidationUtils
from ..directory import DirectoryService, cash_payer
from .service import BookingService

logger = get_logger(__name__)

Problems = List[Tuple[str, str]]


class BookingFlowController:
    """Sequence the wizard steps and gate forward progress on step validity."""

    _STEP_ORDER = [
        BookingStep.WELCOME,
        BookingStep.ON_BEHALF_OF,
        BookingStep.IDENTITY,
        BookingStep.PAYER,
        BookingStep.PROVIDER,
        BookingStep.SLOT,
        BookingStep.CONFIRM,
        BookingStep.SUBMITTED,
    ]

    _FIELD_TO_STEP: Dict[str, BookingStep] = {
        "requester_name": BookingStep.ON_BEHALF_OF,
        "requester_email": BookingStep.ON_BEHALF_OF,
        "requester_phone": BookingStep.ON_BEHALF_OF,
        "requester_organization": BookingStep.ON_BEHALF_OF,
        "first_name": BookingStep.IDENTITY,
        "last_name": BookingStep.IDENTITY,
        "date_of_birth": BookingStep.IDENTITY,
        "phone": BookingStep.IDENTITY,
        "email": BookingStep.IDENTITY,
        "send_to_patient": BookingStep.IDENTITY,
        "send_to_case_manager": BookingStep.IDENTITY,
        "payer_id": BookingStep.PAYER,
        "member_id": BookingStep.PAYER,
        "group_number": BookingStep.PAYER,
        "provider_id": BookingStep.PROVIDER,
        "slot_start": BookingStep.SLOT,
    }

    _REQUESTER_FIELDS = (
        "requester_name",
        "requester_email",
        "requester_phone",
        "requester_organization",
    )
    _TEXT_FIELDS = (
        "requester_name",
        "requester_email",
        "requester_phone",
        "requester_organization",
        "first_name",
        "last_name",
        "phone",
        "email",
        "member_id",
        "group_number",
    )

    def __init__(
        self,
        directory: DirectoryService,
        booking_service: BookingService,
        draft: Optional[BookingDraft] = None,
        date_parser: Optional[DateParser] = None,
    ) -> None:
        self.directory = directory
        self.booking_service = booking_service
        self.draft = draft or BookingDraft()
        self.state = WizardState()
        self.date_parser = date_parser or DateParser()
        self._validators: Dict[BookingStep, Callable[[], Problems]] = {
            BookingStep.WELCOME: self._check_welcome,
            BookingStep.ON_BEHALF_OF: self._check_on_behalf_of,
            BookingStep.IDENTITY: self._check_identity,
            BookingStep.PAYER: self._check_payer,
            BookingStep.PROVIDER: self._check_provider,
            BookingStep.SLOT: self._check_slot,
        }

    # ------------------------------------------------------------------
    # Sequencing

    @property
    def steps(self) -> List[BookingStep]:
        """Steps for this booking; on-behalf-of only when not booking for self."""
        return [
            s
            for s in self._STEP_ORDER
            if s != BookingStep.ON_BEHALF_OF or self.draft.requester_is_self is False
        ]

    @property
    def step_index(self) -> Optional[int]:
        steps = self.steps
        if self.state.step in steps:
            return steps.index(self.state.step)
        return None

    def select_intent(
        self, is_for_self: bool, scenario: Optional[BookingScenario] = None
    ) -> bool:
        """Record who the appointment is for and move past the welcome step."""
        if self.state.step != BookingStep.WELCOME:
            return self._reject(
                BookingValidationError(
                    "Go back to the start to change who the appointment is for",
                    step=self.state.step,
                )
            )
        if self.state.busy:
            return self._reject(
                BookingValidationError(
                    "Please wait for the current request to finish", step=self.state.step
                )
            )

        if is_for_self:
            if scenario not in (None, BookingScenario.SELF):
                return self._reject(
                    BookingValidationError(
                        "A self booking can't use a referral scenario",
                        step=BookingStep.WELCOME,
                        fields=["scenario"],
                    )
                )
            scenario = BookingScenario.SELF
        else:
            scenario = scenario or BookingScenario.REFERRAL
            if scenario == BookingScenario.SELF:
                return self._reject(
                    BookingValidationError(
                        "Choose referral or case manager when booking for someone else",
                        step=BookingStep.WELCOME,
                        fields=["scenario"],
                    )
                )

        if is_for_self and self.draft.requester_is_self is False:
            for name in self._REQUESTER_FIELDS:
                setattr(self.draft, name, None)
            self.state.completed.pop(BookingStep.ON_BEHALF_OF, None)

        self.draft.requester_is_self = is_for_self
        self.draft.booking_scenario = scenario
        self.draft.send_to_patient = scenario != BookingScenario.CASE_MANAGER
        self.draft.send_to_case_manager = scenario == BookingScenario.CASE_MANAGER
        self.draft.version += 1
        return self.advance()

    def advance(self) -> bool:
        """Move to the next step if the current one is complete."""
        step = self.state.step
        if self.state.is_terminal:
            return self._reject(
                BookingValidationError("This booking is already finished", step=step)
            )
        if self.state.busy:
            return self._reject(
                BookingValidationError(
                    f"Still loading {self.state.loading or 'your booking'}, please wait",
                    step=step,
                )
            )
        if step == BookingStep.CONFIRM:
            return self._reject(
                BookingValidationError("Submit the booking to finish", step=step)
            )

        problems = self._validators[step]()
        if problems:
            return self._reject(self._validation_error(step, problems))

        self.state.completed[step] = True
        steps = self.steps
        self._move_to(steps[steps.index(step) + 1])
        return True

    def back(self) -> bool:
        """Return to the previous step. Nothing is validated or cleared."""
        if self.state.is_terminal or self.state.submitting:
            return False
        steps = self.steps
        idx = steps.index(self.state.step)
        if idx == 0:
            return False
        self._move_to(steps[idx - 1])
        return True

    def abandon(self) -> bool:
        """End the session without booking; the draft is discarded."""
        if self.state.is_terminal:
            return False
        if self.state.submitting:
            return self._reject(
                BookingValidationError(
                    "The booking is being submitted and can no longer be cancelled",
                    step=self.state.step,
                )
            )
        logger.info("booking abandoned at step %s", self.state.step.value)
        self.draft = BookingDraft()
        self.state = WizardState(step=BookingStep.ABANDONED)
        return True

    # ------------------------------------------------------------------
    # Draft mutation

    def update_draft(
        self,
        patch: Union[BookingDraftUpdate, Dict[str, Any]],
        *,
        expected_version: Optional[int] = None,
    ) -> bool:
        """
        Apply field updates to the draft.

        The patch is applied all-or-nothing. Payer, provider and slot must be
        picked from the lists loaded for their steps. Changing the payer
        clears the provider and slot; changing the provider clears the slot.
        """
        if isinstance(patch, BookingDraftUpdate):
            patch = patch.model_dump(exclude_unset=True)

        if expected_version is not None and expected_version != self.draft.version:
            raise DraftVersionError(
                f"Draft version mismatch: expected {expected_version}, got {self.draft.version}",
                step=self.state.step,
            )

        step = self.state.step
        if self.state.is_terminal:
            return self._reject(
                BookingValidationError("This booking is already finished", step=step)
            )
        if self.state.busy:
            return self._reject(
                BookingValidationError("Please wait for the current request to finish", step=step)
            )
        if not patch:
            return True

        unknown = [name for name in patch if name not in self._FIELD_TO_STEP]
        if unknown:
            return self._reject(
                BookingValidationError("Unknown booking fields", step=step, fields=unknown)
            )
        if self.draft.requester_is_self is not False:
            requester = [name for name in patch if name in self._REQUESTER_FIELDS]
            if requester:
                return self._reject(
                    BookingValidationError(
                        "Requester details only apply when booking for someone else",
                        step=step,
                        fields=requester,
                    )
                )

        new = replace(self.draft)
        touched = {self._FIELD_TO_STEP[name] for name in patch}

        for name in self._TEXT_FIELDS:
            if name in patch:
                setattr(new, name, ValidationUtils.sanitize_text(patch[name]))
        if "phone" in patch and new.phone:
            new.phone = ValidationUtils.normalize_phone(new.phone) or new.phone
        if "date_of_birth" in patch:
            raw = ValidationUtils.sanitize_text(patch["date_of_birth"])
            new.date_of_birth = (
                self.date_parser.parse_date_of_birth(raw) or raw if raw else None
            )
        for name in ("send_to_patient", "send_to_case_manager"):
            if patch.get(name) is not None:
                setattr(new, name, bool(patch[name]))

        payer_changed = False
        if "payer_id" in patch:
            error = self._apply_payer(new, patch["payer_id"])
            if error:
                return self._reject(error)
            payer_changed = new.payer_id != self.draft.payer_id
            if payer_changed:
                new.provider_id = None
                new.provider_name = None
                new.slot = None
                touched.update({BookingStep.PROVIDER, BookingStep.SLOT})

        provider_changed = False
        if "provider_id" in patch:
            error = self._apply_provider(new, patch["provider_id"], stale=payer_changed)
            if error:
                return self._reject(error)
            provider_changed = new.provider_id != self.draft.provider_id
            if provider_changed:
                new.slot = None
                touched.add(BookingStep.SLOT)

        if "slot_start" in patch:
            error = self._apply_slot(
                new, patch["slot_start"], stale=payer_changed or provider_changed
            )
            if error:
                return self._reject(error)

        for f in dataclass_fields(BookingDraft):
            setattr(self.draft, f.name, getattr(new, f.name))
        self.draft.version += 1

        if payer_changed:
            self.state.providers = None
        if payer_changed or provider_changed:
            self.state.slots = None
            self.state.slots_date = None
        for touched_step in touched:
            self.state.completed.pop(touched_step, None)
        self.state.error = None
        return True

    def _find_payer(self, payer_id: str) -> Optional[Payer]:
        candidates = list(self.state.payers or []) + list(self.state.payer_results or [])
        candidates.append(cash_payer(self.date_parser.today()))
        for payer in candidates:
            if payer.id == payer_id:
                return payer
        return None

    def _apply_payer(self, new: BookingDraft, payer_id: Optional[str]) -> Optional[BookingFlowError]:
        if payer_id is None:
            new.payer_id = new.payer_name = new.payer_acceptance = None
            return None
        payer = self._find_payer(payer_id)
        if payer is None:
            return BookingValidationError(
                "Select your insurance from the list", step=BookingStep.PAYER, fields=["payer_id"]
            )
        new.payer_id = payer.id
        new.payer_name = payer.name
        new.payer_acceptance = payer.acceptance
        return None

    def _apply_provider(
        self, new: BookingDraft, provider_id: Optional[str], *, stale: bool
    ) -> Optional[BookingFlowError]:
        if provider_id is None:
            new.provider_id = new.provider_name = None
            return None
        if not new.payer_id:
            return BookingValidationError(
                "Choose your insurance before choosing a provider",
                step=BookingStep.PROVIDER,
                fields=["provider_id"],
            )
        options = [] if stale else (self.state.providers or [])
        provider = next((p for p in options if p.id == provider_id), None)
        if provider is None:
            return BookingValidationError(
                "Select a provider from the list", step=BookingStep.PROVIDER, fields=["provider_id"]
            )
        new.provider_id = provider.id
        new.provider_name = provider.display_name
        return None

    def _apply_slot(
        self, new: BookingDraft, slot_start: Optional[str], *, stale: bool
    ) -> Optional[BookingFlowError]:
        if slot_start is None:
            new.slot = None
            return None
        if not new.provider_id:
            return BookingValidationError(
                "Choose a provider before choosing a time",
                step=BookingStep.SLOT,
                fields=["slot_start"],
            )
        try:
            start = datetime.fromisoformat(slot_start.replace("Z", "+00:00"))
        except ValueError:
            return BookingValidationError(
                "Invalid appointment time", step=BookingStep.SLOT, fields=["slot_start"]
            )
        options = [] if stale else (self.state.slots or [])
        slot = next(
            (
                s
                for s in options
                if s.provider_id == new.provider_id and self._same_instant(s.start_time, start)
            ),
            None,
        )
        if slot is None:
            return BookingValidationError(
                "Select an available time from the list", step=BookingStep.SLOT, fields=["slot_start"]
            )
        new.slot = slot
        return None

    @staticmethod
    def _same_instant(a: datetime, b: datetime) -> bool:
        if (a.tzinfo is None) != (b.tzinfo is None):
            return a.replace(tzinfo=None) == b.replace(tzinfo=None)
        return a == b

    # ------------------------------------------------------------------
    # Dependent fetches

    async def _fetch(self, name: str, step: BookingStep, fetch: Callable[[], Awaitable[Any]]) -> Tuple[bool, Any]:
        if self.state.is_terminal or self.state.step != step:
            self._reject(
                BookingValidationError(
                    f"{name.capitalize()} can only be loaded on the {step.value} step",
                    step=self.state.step,
                )
            )
            return False, None
        if self.state.busy:
            self._reject(
                BookingValidationError(
                    f"Still loading {self.state.loading or 'your booking'}, please wait",
                    step=step,
                )
            )
            return False, None

        state = self.state
        state.loading = name
        try:
            result = await fetch()
        except BookingFlowError as e:
            if e.step is None:
                e.step = step
            logger.warning("loading %s failed on step %s: %s", name, step.value, e.message)
            if self.state is state:
                self._reject(e)
            return False, None
        finally:
            state.loading = None

        if self.state is not state:
            # Abandoned while the fetch was in flight.
            logger.info("dropping %s loaded after the booking was abandoned", name)
            return False, None
        self.state.error = None
        return True, result

    async def load_payers(self) -> bool:
        """Load the approved payers for the payer step."""
        ok, payers = await self._fetch("payers", BookingStep.PAYER, self.directory.list_payers)
        if ok:
            self.state.payers = payers
        return ok

    async def search_payers(self, query: str) -> bool:
        """Search payers by name for the payer step."""
        ok, payers = await self._fetch(
            "payers", BookingStep.PAYER, lambda: self.directory.search_payers(query)
        )
        if ok:
            self.state.payer_results = payers
        return ok

    async def load_providers(self, on_date: Optional[date] = None) -> bool:
        """Load providers bookable under the selected payer."""
        if not self.draft.payer_id:
            return self._reject(
                BookingValidationError(
                    "Choose your insurance before choosing a provider",
                    step=self.state.step,
                    fields=["payer_id"],
                )
            )
        provider_filter = ProviderFilter(payer_id=self.draft.payer_id, on_date=on_date)
        ok, providers = await self._fetch(
            "providers",
            BookingStep.PROVIDER,
            lambda: self.directory.list_providers(provider_filter),
        )
        if ok:
            self.state.providers = providers
        return ok

    async def load_slots(self, on_date: Union[date, str]) -> bool:
        """Load open slots for the selected provider on one day."""
        if isinstance(on_date, str):
            parsed = self.date_parser.parse_appointment_date(on_date)
            if parsed is None:
                return self._reject(
                    BookingValidationError(
                        "Choose a date from today onward", step=self.state.step, fields=["date"]
                    )
                )
            on_date = parsed
        if not self.draft.provider_id:
            return self._reject(
                BookingValidationError(
                    "Choose a provider before choosing a time",
                    step=self.state.step,
                    fields=["provider_id"],
                )
            )

        provider_id = self.draft.provider_id
        ok, slots = await self._fetch(
            "slots", BookingStep.SLOT, lambda: self.directory.list_slots(provider_id, on_date)
        )
        if ok:
            self.state.slots = slots
            self.state.slots_date = on_date.isoformat()
        return ok

    # ------------------------------------------------------------------
    # Submission

    async def submit(self) -> bool:
        """
        Send the finished draft to booking creation.

        On failure the step stays at ``confirm``, the draft is kept and the
        error is recorded so the caller can offer a retry.
        """
        step = self.state.step
        if step != BookingStep.CONFIRM:
            return self._reject(
                BookingValidationError("The booking can only be submitted from the confirm step", step=step)
            )
        if self.state.busy:
            return self._reject(
                BookingValidationError("The booking is already being submitted", step=step)
            )

        for check_step in self.steps:
            if check_step == BookingStep.CONFIRM:
                break
            problems = self._validators[check_step]()
            if problems:
                self.state.completed.pop(check_step, None)
                return self._reject(self._validation_error(check_step, problems))

        self.state.submitting = True
        try:
            result = await self.booking_service.create_booking(self.draft)
        except BookingValidationError as e:
            return self._reject(e)
        except SubmissionError as e:
            logger.warning("booking submission failed: %s", e.message)
            return self._reject(e)
        finally:
            self.state.submitting = False

        self.state.booking_id = result.booking_id
        self.state.confirmation_code = result.confirmation_code
        self.state.completed[BookingStep.CONFIRM] = True
        self._move_to(BookingStep.SUBMITTED)
        return True

    # ------------------------------------------------------------------
    # Step requirements

    def _check_welcome(self) -> Problems:
        if self.draft.requester_is_self is None:
            return [("requester_is_self", "Tell us who the appointment is for")]
        return []

    def _check_on_behalf_of(self) -> Problems:
        problems: Problems = []
        ok, msg = ValidationUtils.validate_name(self.draft.requester_name, "Your name")
        if not ok:
            problems.append(("requester_name", msg))
        ok, msg = ValidationUtils.validate_email(self.draft.requester_email)
        if not ok:
            problems.append(("requester_email", msg))
        if self.draft.requester_phone:
            ok, msg = ValidationUtils.validate_phone(self.draft.requester_phone)
            if not ok:
                problems.append(("requester_phone", msg))
        return problems

    def _check_identity(self) -> Problems:
        problems: Problems = []
        ok, msg = ValidationUtils.validate_name(self.draft.first_name, "First name")
        if not ok:
            problems.append(("first_name", msg))
        ok, msg = ValidationUtils.validate_name(self.draft.last_name, "Last name")
        if not ok:
            problems.append(("last_name", msg))
        ok, msg = ValidationUtils.validate_date_of_birth(
            self.draft.date_of_birth, self.date_parser.today()
        )
        if not ok:
            problems.append(("date_of_birth", msg))
        ok, msg = ValidationUtils.validate_phone(self.draft.phone)
        if not ok:
            problems.append(("phone", msg))
        if self.draft.email:
            ok, msg = ValidationUtils.validate_email(self.draft.email)
            if not ok:
                problems.append(("email", msg))
        return problems

    def _check_payer(self) -> Problems:
        if not self.draft.payer_id:
            return [("payer_id", "Select your insurance or choose to pay cash")]
        name = self.draft.payer_name or "This insurance"
        acceptance = self.draft.payer_acceptance
        if acceptance == PayerAcceptance.ACTIVE:
            return []
        if acceptance == PayerAcceptance.FUTURE:
            return [("payer_id", f"We'll be in network with {name} soon; join the waitlist or pay cash")]
        if acceptance == PayerAcceptance.WAITLIST:
            return [("payer_id", f"We're not yet in network with {name}; join the waitlist or pay cash")]
        return [("payer_id", f"{name} is not accepted")]

    def _check_provider(self) -> Problems:
        if not self.draft.provider_id:
            return [("provider_id", "Select a provider")]
        return []

    def _check_slot(self) -> Problems:
        slot: Optional[TimeSlot] = self.draft.slot
        if slot is None:
            return [("slot_start", "Select an appointment time")]
        if slot.provider_id != self.draft.provider_id:
            return [("slot_start", "That time belongs to a different provider")]
        if slot.start_time <= self.date_parser.now():
            return [("slot_start", "That time has already passed")]
        return []

    # ------------------------------------------------------------------
    # Helpers

    @staticmethod
    def _validation_error(step: BookingStep, problems: Problems) -> BookingValidationError:
        return BookingValidationError(
            "; ".join(msg for _, msg in problems),
            step=step,
            fields=[name for name, _ in problems],
        )

    def _reject(self, error: BookingFlowError) -> bool:
        self.state.error = error
        logger.info("booking step %s: %s", self.state.step.value, error.message)
        return False

    def _move_to(self, step: BookingStep) -> None:
        prev = self.state.step
        self.state.step = step
        self.state.error = None
        if prev != step:
            self._log_step_transition(prev, step)

    def _log_step_transition(self, from_step: BookingStep, to_step: BookingStep) -> None:
        logger.info("booking step %s -> %s", from_step.value, to_step.value)

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot of the wizard for API responses."""

        def dump(items):
            if items is None:
                return None
            return [item.model_dump(mode="json") for item in items]

        return {
            "step": self.state.step.value,
            "step_index": self.step_index,
            "steps": [s.value for s in self.steps],
            "completed": {s.value: ok for s, ok in self.state.completed.items()},
            "error": self.state.error.to_dict() if self.state.error else None,
            "loading": self.state.loading,
            "submitting": self.state.submitting,
            "draft": self.draft.to_dict(),
            "options": {
                "payers": dump(self.state.payers),
                "payer_results": dump(self.state.payer_results),
                "providers": dump(self.state.providers),
                "slots": dump(self.state.slots),
                "slots_date": self.state.slots_date,
            },
            "booking": {
                "booking_id": self.state.booking_id,
                "confirmation_code": self.state.confirmation_code,
            },
        }
