"""
External API-related exceptions.
"""

from typing import Optional


class ExternalAPIError(Exception):
    """Base exception for external API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DatabaseRequestError(ExternalAPIError):
    """Exception raised when the hosted database rejects or fails a request."""
    pass
