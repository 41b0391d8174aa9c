"""
Hosted database connection configuration.
"""

from typing import Dict, Optional
from pydantic import BaseModel

from .settings import Settings


class DatabaseConfig(BaseModel):
    """Connection details for the hosted database's REST interface."""

    base_url: str = "http://localhost:54321"
    service_key: Optional[str] = None
    timeout: float = 10.0
    rest_prefix: str = "/rest/v1"

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabaseConfig":
        """Build the config from application settings."""
        return cls(
            base_url=settings.database_url,
            service_key=settings.database_service_key,
            timeout=settings.database_timeout,
        )

    def get_table_url(self, table: str) -> str:
        """Get the REST URL for a table or view."""
        return f"{self.base_url.rstrip('/')}{self.rest_prefix}/{table}"

    def get_headers(self) -> Dict[str, str]:
        """Get the auth headers expected by the database gateway."""
        headers = {"Accept": "application/json"}
        if self.service_key:
            headers["apikey"] = self.service_key
            headers["Authorization"] = f"Bearer {self.service_key}"
        return headers

    def is_configured(self) -> bool:
        """Check if a service key has been provided."""
        return bool(self.base_url and self.service_key)
