"""
Validation utilities for patient and requester contact data.
"""

import re
from datetime import date
from typing import Optional, Tuple

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")
_NAME_RE = re.compile(r"^[A-Za-zÀ-ÖØ-öø-ÿ' .\-]+$")

MAX_PATIENT_AGE_YEARS = 130


class ValidationUtils:
    """Validation utilities for various data types."""

    @staticmethod
    def normalize_phone(phone: str) -> Optional[str]:
        """Return the 10-digit US number, or None if it can't be one."""
        if not phone:
            return None
        digits = re.sub(r"\D", "", phone)
        if len(digits) == 11 and digits.startswith("1"):
            digits = digits[1:]
        if len(digits) != 10 or digits[0] in "01":
            return None
        return digits

    @staticmethod
    def validate_phone(phone: str) -> Tuple[bool, Optional[str]]:
        """
        Validate a US phone number.

        Args:
            phone: Phone number to validate

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not phone:
            return False, "Phone number is required"
        if ValidationUtils.normalize_phone(phone) is None:
            return False, "Enter a 10-digit phone number, e.g. 801-555-0123"
        return True, None

    @staticmethod
    def validate_email(email: str) -> Tuple[bool, Optional[str]]:
        """
        Validate email format.

        Args:
            email: Email address to validate

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not email:
            return False, "Email is required"
        if not _EMAIL_RE.match(email.strip()):
            return False, "Enter a valid email address"
        return True, None

    @staticmethod
    def validate_name(name: str, label: str = "Name") -> Tuple[bool, Optional[str]]:
        """
        Validate a person's name.

        Args:
            name: Name to validate
            label: Field label used in the error message

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not name or not isinstance(name, str) or not name.strip():
            return False, f"{label} is required"

        name = name.strip()
        if len(name) > 100:
            return False, f"{label} is too long"
        if not _NAME_RE.match(name):
            return False, f"{label} contains invalid characters"
        return True, None

    @staticmethod
    def validate_date_of_birth(value: str, today: date) -> Tuple[bool, Optional[str]]:
        """
        Validate a YYYY-MM-DD date of birth against today's date.

        Args:
            value: Normalized date of birth
            today: Current date in the clinic timezone

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not value:
            return False, "Date of birth is required"
        try:
            dob = date.fromisoformat(value)
        except ValueError:
            return False, "Enter date of birth as MM/DD/YYYY"
        if dob >= today:
            return False, "Date of birth must be in the past"
        if today.year - dob.year > MAX_PATIENT_AGE_YEARS:
            return False, "Date of birth looks incorrect"
        return True, None

    @staticmethod
    def sanitize_text(text: Optional[str]) -> Optional[str]:
        """
        Strip control characters and collapse whitespace.

        Args:
            text: Text to sanitize

        Returns:
            Sanitized text, or None when nothing is left
        """
        if text is None:
            return None

        text = re.sub(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]", "", text)
        text = re.sub(r"\s+", " ", text).strip()
        return text or None
