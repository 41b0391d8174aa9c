"""
Pytest configuration and fixtures.
"""

from datetime import timedelta
from typing import Optional

import pytest
from unittest.mock import Mock, AsyncMock

from moonlit_scheduler.config import Settings
from moonlit_scheduler.core.enums import PayerAcceptance
from moonlit_scheduler.core.models import BookingResult, Payer, Provider, TimeSlot
from moonlit_scheduler.services.booking import BookingFlowController, BookingService
from moonlit_scheduler.services.directory import DirectoryService
from moonlit_scheduler.utils.date import DateParser

TIMEZONE = "America/Denver"


def make_slot(date_parser: DateParser, provider_id: str = "dr-lee", days_ahead: int = 2,
              hour: int = 10) -> TimeSlot:
    """A slot safely in the future for the given provider."""
    start = (date_parser.now() + timedelta(days=days_ahead)).replace(
        hour=hour, minute=0, second=0, microsecond=0
    )
    return TimeSlot(
        start_time=start,
        end_time=start + timedelta(minutes=60),
        provider_id=provider_id,
        duration_minutes=60,
    )


@pytest.fixture
def settings():
    """Settings isolated from any local .env file."""
    return Settings(_env_file=None, timezone=TIMEZONE, database_service_key="test-key")


@pytest.fixture
def date_parser():
    return DateParser(TIMEZONE)


@pytest.fixture
def active_payer():
    return Payer(
        id="payer-acme",
        name="Acme Health",
        status_code="approved",
        acceptance=PayerAcceptance.ACTIVE,
    )


@pytest.fixture
def waitlist_payer():
    return Payer(
        id="payer-slow",
        name="Slow Mutual",
        status_code="in_progress",
        acceptance=PayerAcceptance.WAITLIST,
    )


@pytest.fixture
def provider():
    return Provider(id="dr-lee", first_name="Ann", last_name="Lee", title="MD")


@pytest.fixture
def slot(date_parser):
    return make_slot(date_parser)


@pytest.fixture
def mock_directory(active_payer, waitlist_payer, provider, slot):
    """Mock directory service."""
    directory = Mock(spec=DirectoryService)
    directory.list_payers = AsyncMock(return_value=[active_payer, waitlist_payer])
    directory.search_payers = AsyncMock(return_value=[active_payer])
    directory.list_providers = AsyncMock(return_value=[provider])
    directory.list_slots = AsyncMock(return_value=[slot])
    return directory


@pytest.fixture
def mock_booking_service():
    """Mock booking service."""
    service = Mock(spec=BookingService)
    service.create_booking = AsyncMock(
        return_value=BookingResult(booking_id="appt-1", confirmation_code="K7Q2ZP")
    )
    return service


@pytest.fixture
def controller(mock_directory, mock_booking_service, date_parser):
    """Fresh booking wizard with mocked dependencies."""
    return BookingFlowController(mock_directory, mock_booking_service, date_parser=date_parser)


IDENTITY = {
    "first_name": "Jordan",
    "last_name": "Rivera",
    "date_of_birth": "1988-03-14",
    "phone": "(801) 555-0123",
    "email": "jordan@example.com",
}


async def walk_to_confirm(controller: BookingFlowController, payer_id: Optional[str] = "payer-acme",
                          slot: Optional[TimeSlot] = None) -> None:
    """Drive a self booking from welcome to the confirm step."""
    assert controller.select_intent(True)
    assert controller.update_draft(IDENTITY)
    assert controller.advance()
    assert await controller.load_payers()
    assert controller.update_draft({"payer_id": payer_id})
    assert controller.advance()
    assert await controller.load_providers()
    assert controller.update_draft({"provider_id": "dr-lee"})
    assert controller.advance()
    assert await controller.load_slots(controller.date_parser.today() + timedelta(days=2))
    chosen = slot or controller.state.slots[0]
    assert controller.update_draft({"slot_start": chosen.start_time.isoformat()})
    assert controller.advance()
