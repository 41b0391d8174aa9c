"""
Application settings and configuration.
"""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Moonlit Scheduler"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8001

    # Hosted database (REST interface)
    database_url: str = "http://localhost:54321"
    database_service_key: Optional[str] = None
    database_timeout: float = 10.0

    # Booking rules
    timezone: str = "America/Denver"
    appointment_duration_minutes: int = Field(default=60, ge=5)
    appointment_buffer_minutes: int = Field(default=0, ge=0)
    future_acceptance_window_days: int = 21
    payer_search_limit: int = 10

    # Session Management
    session_idle_seconds: int = 1800
    session_sweep_seconds: float = 60

    # Logging
    log_level: str = "INFO"


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()
