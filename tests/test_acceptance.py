from datetime import date, timedelta

from moonlit_scheduler.core.enums import PayerAcceptance
from moonlit_scheduler.core.models import CASH_PAYER_ID, Payer
from moonlit_scheduler.services.directory import cash_payer, classify_payer, with_acceptance

TODAY = date(2025, 6, 2)


def _payer(status, effective=None, name="Plan", id="p"):
    return Payer(id=id, name=name, status_code=status, effective_date=effective)


def test_approved_and_effective_is_active():
    assert classify_payer(_payer("approved", TODAY), TODAY) == PayerAcceptance.ACTIVE
    assert (
        classify_payer(_payer("approved", TODAY - timedelta(days=90)), TODAY)
        == PayerAcceptance.ACTIVE
    )


def test_approved_within_window_is_future():
    payer = _payer("approved", TODAY + timedelta(days=21))
    assert classify_payer(payer, TODAY) == PayerAcceptance.FUTURE


def test_approved_beyond_window_is_waitlist():
    payer = _payer("approved", TODAY + timedelta(days=22))
    assert classify_payer(payer, TODAY) == PayerAcceptance.WAITLIST
    assert classify_payer(payer, TODAY, window_days=30) == PayerAcceptance.FUTURE


def test_approved_without_effective_date_is_waitlist():
    assert classify_payer(_payer("approved"), TODAY) == PayerAcceptance.WAITLIST


def test_pending_statuses_are_waitlist():
    for status in ("in_progress", "waiting_on_them", "not_started"):
        assert classify_payer(_payer(status), TODAY) == PayerAcceptance.WAITLIST


def test_rejected_and_unknown_statuses_not_accepted():
    for status in ("denied", "blocked", "withdrawn", "on_pause", "mystery", None):
        assert classify_payer(_payer(status), TODAY) == PayerAcceptance.NOT_ACCEPTED


def test_cash_payer_is_always_active():
    payer = cash_payer(TODAY)
    assert payer.id == CASH_PAYER_ID
    assert payer.is_cash
    assert classify_payer(payer, TODAY) == PayerAcceptance.ACTIVE


def test_with_acceptance_sorts_bookable_first():
    payers = [
        _payer("denied", name="Zeta", id="z"),
        _payer("in_progress", name="beta", id="b"),
        _payer("approved", TODAY + timedelta(days=5), name="Gamma", id="g"),
        _payer("approved", TODAY, name="alpha", id="a"),
        _payer("approved", TODAY, name="Acme", id="c"),
    ]

    result = with_acceptance(payers, TODAY)

    assert [p.id for p in result] == ["c", "a", "g", "b", "z"]
    assert result[0].acceptance == PayerAcceptance.ACTIVE
    # Inputs are not mutated.
    assert payers[0].acceptance is None
