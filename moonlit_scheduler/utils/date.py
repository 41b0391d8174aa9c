"""
Date and time parsing utilities.
"""

from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo
from dateparser import parse as parse_date

from ..config import get_settings


class DateParser:
    """Date parsing utilities for free-form patient input."""

    def __init__(self, timezone: Optional[str] = None):
        self.tz = ZoneInfo(timezone or get_settings().timezone)

    def now(self) -> datetime:
        """Current time in the clinic timezone."""
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()

    def parse_date_of_birth(self, text: str) -> Optional[str]:
        """
        Parse a date of birth like '03/14/1988' or 'March 14 1988'.

        Args:
            text: Date string entered by the patient

        Returns:
            Date in YYYY-MM-DD format or None if parsing fails
        """
        if not text or not text.strip():
            return None

        try:
            return date.fromisoformat(text.strip()).isoformat()
        except ValueError:
            pass

        parsed = parse_date(
            text.strip(),
            settings={
                "PREFER_DATES_FROM": "past",
                "DATE_ORDER": "MDY",
                "STRICT_PARSING": True,
            },
            languages=["en"],
        )
        if not parsed:
            return None
        return parsed.date().isoformat()

    def parse_appointment_date(self, text: str) -> Optional[date]:
        """
        Parse the day a patient wants to see slots for.

        Accepts ISO dates as well as phrases like 'tomorrow' or 'next tuesday'.
        Returns None if the text can't be parsed or falls before today.
        """
        if not text or not text.strip():
            return None

        try:
            result = date.fromisoformat(text.strip())
        except ValueError:
            parsed = parse_date(
                text.strip(),
                settings={
                    "PREFER_DATES_FROM": "future",
                    "TIMEZONE": str(self.tz),
                    "RELATIVE_BASE": self.now().replace(tzinfo=None),
                },
                languages=["en"],
            )
            if not parsed:
                return None
            result = parsed.date()

        if result < self.today():
            return None
        return result
