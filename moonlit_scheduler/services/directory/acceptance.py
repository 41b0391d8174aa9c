"""
Payer acceptance rules.
"""

from datetime import date
from typing import Iterable, List

from ...core.enums import PayerAcceptance
from ...core.models import CASH_PAYER_ID, Payer

REJECTED_STATUSES = frozenset({"denied", "blocked", "withdrawn", "on_pause"})
PENDING_STATUSES = frozenset({"waiting_on_them", "in_progress", "not_started"})
APPROVED = "approved"


def classify_payer(payer: Payer, today: date, window_days: int = 21) -> PayerAcceptance:
    """Work out whether patients with this payer can book today."""
    if payer.id == CASH_PAYER_ID:
        return PayerAcceptance.ACTIVE

    status = (payer.status_code or "").strip().lower()

    if status in REJECTED_STATUSES:
        return PayerAcceptance.NOT_ACCEPTED
    if status == APPROVED:
        if payer.effective_date is None:
            return PayerAcceptance.WAITLIST
        if payer.effective_date <= today:
            return PayerAcceptance.ACTIVE
        days_until_active = (payer.effective_date - today).days
        if days_until_active > window_days:
            return PayerAcceptance.WAITLIST
        return PayerAcceptance.FUTURE
    if status in PENDING_STATUSES:
        return PayerAcceptance.WAITLIST
    return PayerAcceptance.NOT_ACCEPTED


def with_acceptance(
    payers: Iterable[Payer], today: date, window_days: int = 21
) -> List[Payer]:
    """Annotate payers with acceptance and sort bookable ones first."""
    annotated = [
        p.model_copy(update={"acceptance": classify_payer(p, today, window_days)})
        for p in payers
    ]
    annotated.sort(key=lambda p: (p.acceptance.priority, p.name.lower()))
    return annotated


def cash_payer(today: date) -> Payer:
    """Synthetic payer for self-pay patients."""
    return Payer(
        id=CASH_PAYER_ID,
        name="Cash Payment",
        payer_type="cash",
        status_code=APPROVED,
        effective_date=today,
        acceptance=PayerAcceptance.ACTIVE,
    )
