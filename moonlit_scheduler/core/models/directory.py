"""
Directory data models: payers, providers and appointment slots.

Rows come straight from the hosted database, so unknown columns are ignored.
"""

from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, field_validator

from ..enums import PayerAcceptance


CASH_PAYER_ID = "cash-payment"


def _date_prefix(value):
    # Timestamps like "2025-03-01T00:00:00+00:00" are compared by calendar day.
    if isinstance(value, str) and len(value) > 10:
        return value[:10]
    if isinstance(value, datetime):
        return value.date()
    return value


class Payer(BaseModel):
    """Insurance payer selectable during booking."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    payer_type: Optional[str] = None
    state: Optional[str] = None
    status_code: Optional[str] = None
    effective_date: Optional[date] = None
    projected_effective_date: Optional[date] = None
    requires_attending: bool = False
    acceptance: Optional[PayerAcceptance] = None

    @field_validator("effective_date", "projected_effective_date", mode="before")
    @classmethod
    def normalize_dates(cls, value):
        return _date_prefix(value)

    @property
    def is_cash(self) -> bool:
        return self.payer_type == "cash"


class Provider(BaseModel):
    """Provider eligible for scheduling."""

    model_config = ConfigDict(extra="ignore")

    id: str
    first_name: str
    last_name: str
    title: Optional[str] = None
    role: Optional[str] = None
    languages_spoken: Optional[List[str]] = None
    accepts_new_patients: bool = True
    is_bookable: bool = True
    bookable_from_date: Optional[date] = None

    @field_validator("bookable_from_date", mode="before")
    @classmethod
    def normalize_dates(cls, value):
        return _date_prefix(value)

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return f"{name}, {self.title}" if self.title else name


class TimeSlot(BaseModel):
    """Bookable appointment slot for one provider."""

    model_config = ConfigDict(extra="ignore")

    start_time: datetime
    end_time: datetime
    provider_id: str
    duration_minutes: int
    available: bool = True


class ProviderFilter(BaseModel):
    """Filter for listing bookable providers."""

    model_config = ConfigDict(extra="forbid")

    payer_id: str
    on_date: Optional[date] = None
    accepts_new_patients: Optional[bool] = True
