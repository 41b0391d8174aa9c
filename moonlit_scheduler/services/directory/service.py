"""
Directory service: the payer, provider and slot lists the booking steps render.
"""

from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional

from pydantic import ValidationError

from ...config import Settings, get_settings
from ...core.exceptions import DatabaseRequestError, DirectoryFetchError
from ...core.enums import BookingStep
from ...core.models import CASH_PAYER_ID, Payer, Provider, ProviderFilter, TimeSlot
from ...utils.date import DateParser
from ...utils.logging import get_logger
from ..external import HostedDatabaseService, in_list
from .acceptance import with_acceptance

logger = get_logger(__name__)

PAYER_COLUMNS = (
    "id,name,payer_type,state,status_code,effective_date,"
    "projected_effective_date,requires_attending"
)
PROVIDER_COLUMNS = (
    "id,first_name,last_name,title,role,languages_spoken,"
    "accepts_new_patients,is_bookable"
)
MIN_SEARCH_LENGTH = 2


def _parse_timestamp(value: str, tz) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


class DirectoryService:
    """Read-only queries against payers, providers and availability."""

    def __init__(
        self,
        database: HostedDatabaseService,
        settings: Optional[Settings] = None,
        date_parser: Optional[DateParser] = None,
    ):
        self.database = database
        self.settings = settings or get_settings()
        self.date_parser = date_parser or DateParser(self.settings.timezone)

    async def list_payers(self) -> List[Payer]:
        """Approved payers, bookable ones first."""
        try:
            rows = await self.database.select(
                "payers",
                columns=PAYER_COLUMNS,
                filters=[("status_code", "eq.approved")],
                order="name",
            )
            payers = [Payer.model_validate(r) for r in rows]
        except (DatabaseRequestError, ValidationError) as e:
            logger.error("list_payers failed: %s", e)
            raise DirectoryFetchError(
                "We couldn't load the list of insurance plans. Please try again.",
                step=BookingStep.PAYER,
            ) from e

        return with_acceptance(
            payers,
            self.date_parser.today(),
            self.settings.future_acceptance_window_days,
        )

    async def search_payers(self, query: str) -> List[Payer]:
        """Search payers by name, including ones we don't accept."""
        query = (query or "").strip()
        if len(query) < MIN_SEARCH_LENGTH:
            return []

        # The gateway treats these as syntax inside filter values.
        cleaned = "".join(ch for ch in query if ch not in ",()*")
        try:
            rows = await self.database.select(
                "payers",
                columns=PAYER_COLUMNS,
                filters=[("name", f"ilike.*{cleaned}*")],
                order="name",
                limit=self.settings.payer_search_limit,
            )
            payers = [Payer.model_validate(r) for r in rows]
        except (DatabaseRequestError, ValidationError) as e:
            logger.error("search_payers failed for %r: %s", query, e)
            raise DirectoryFetchError(
                "We couldn't search insurance plans. Please try again.",
                step=BookingStep.PAYER,
            ) from e

        return with_acceptance(
            payers,
            self.date_parser.today(),
            self.settings.future_acceptance_window_days,
        )

    async def list_providers(self, provider_filter: ProviderFilter) -> List[Provider]:
        """
        Providers that can be booked under the given payer.

        Cash patients can see any bookable provider. Insured patients only see
        providers with an in-network relationship that is visible in the
        booking widget and bookable on ``on_date`` (when given).
        """
        try:
            if provider_filter.payer_id == CASH_PAYER_ID:
                bookable_from: Dict[str, Optional[date]] = {}
                id_filter = None
            else:
                bookable_from = await self._bookable_relationships(provider_filter)
                if not bookable_from:
                    logger.info(
                        "no bookable providers for payer %s", provider_filter.payer_id
                    )
                    return []
                id_filter = ("id", in_list(sorted(bookable_from)))

            filters = [("is_bookable", "eq.true")]
            if id_filter:
                filters.append(id_filter)
            if provider_filter.accepts_new_patients is not None:
                value = "true" if provider_filter.accepts_new_patients else "false"
                filters.append(("accepts_new_patients", f"eq.{value}"))

            rows = await self.database.select(
                "providers",
                columns=PROVIDER_COLUMNS,
                filters=filters,
                order="last_name,first_name",
            )
            providers = [Provider.model_validate(r) for r in rows]
        except (DatabaseRequestError, ValidationError, ValueError) as e:
            logger.error("list_providers failed for payer %s: %s", provider_filter.payer_id, e)
            raise DirectoryFetchError(
                "We couldn't load providers for your insurance. Please try again.",
                step=BookingStep.PROVIDER,
            ) from e

        for provider in providers:
            provider.bookable_from_date = bookable_from.get(provider.id)
        return providers

    async def _bookable_relationships(
        self, provider_filter: ProviderFilter
    ) -> Dict[str, Optional[date]]:
        filters = [
            ("payer_id", f"eq.{provider_filter.payer_id}"),
            ("network_status", "eq.in_network"),
            ("show_in_widget", "eq.true"),
        ]
        if provider_filter.on_date:
            filters.append(("bookable_from_date", f"lte.{provider_filter.on_date.isoformat()}"))

        rows = await self.database.select(
            "v_bookable_provider_payer",
            columns="provider_id,payer_id,network_status,bookable_from_date",
            filters=filters,
        )

        # A provider can be bookable through more than one relationship.
        earliest: Dict[str, Optional[date]] = {}
        for row in rows:
            provider_id = row.get("provider_id")
            if not provider_id:
                continue
            raw = row.get("bookable_from_date")
            start = date.fromisoformat(raw[:10]) if raw else None
            if provider_id not in earliest:
                earliest[provider_id] = start
            elif start is None or (earliest[provider_id] and start < earliest[provider_id]):
                # No start date means bookable already.
                earliest[provider_id] = start
        return earliest

    async def list_slots(self, provider_id: str, on_date: date) -> List[TimeSlot]:
        """Open appointment slots for a provider on one day."""
        tz = self.date_parser.tz
        # Schedules use 0 = Sunday.
        day_of_week = (on_date.weekday() + 1) % 7
        day_start = datetime.combine(on_date, time.min, tzinfo=tz)
        day_end = day_start + timedelta(days=1)

        try:
            blocks = await self.database.select(
                "provider_availability",
                columns="day_of_week,start_time,end_time",
                filters=[
                    ("provider_id", f"eq.{provider_id}"),
                    ("day_of_week", f"eq.{day_of_week}"),
                ],
                order="start_time",
            )
            if not blocks:
                return []
            booked = await self.database.select(
                "appointments",
                columns="start_time,end_time",
                filters=[
                    ("provider_id", f"eq.{provider_id}"),
                    ("start_time", f"gte.{day_start.isoformat()}"),
                    ("start_time", f"lt.{day_end.isoformat()}"),
                    ("status", "neq.cancelled"),
                ],
            )
            busy = [
                (_parse_timestamp(a["start_time"], tz), _parse_timestamp(a["end_time"], tz))
                for a in booked
                if a.get("start_time") and a.get("end_time")
            ]
            windows = [
                (
                    datetime.combine(on_date, time.fromisoformat(b["start_time"]), tzinfo=tz),
                    datetime.combine(on_date, time.fromisoformat(b["end_time"]), tzinfo=tz),
                )
                for b in blocks
            ]
        except (DatabaseRequestError, KeyError, ValueError) as e:
            logger.error("list_slots failed for provider %s on %s: %s", provider_id, on_date, e)
            raise DirectoryFetchError(
                "We couldn't load appointment times. Please try again.",
                step=BookingStep.SLOT,
            ) from e

        duration = timedelta(minutes=self.settings.appointment_duration_minutes)
        step = duration + timedelta(minutes=self.settings.appointment_buffer_minutes)
        now = self.date_parser.now()

        slots: List[TimeSlot] = []
        for start, end in windows:
            current = start
            while current + duration <= end:
                slot_end = current + duration
                overlaps = any(b_start < slot_end and current < b_end for b_start, b_end in busy)
                if current > now and not overlaps:
                    slots.append(
                        TimeSlot(
                            start_time=current,
                            end_time=slot_end,
                            provider_id=provider_id,
                            duration_minutes=self.settings.appointment_duration_minutes,
                        )
                    )
                current += step
        return slots

