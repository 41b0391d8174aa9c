"""
Configuration management for the Moonlit Scheduler.
"""

from .settings import Settings, get_settings
from .database import DatabaseConfig

__all__ = [
    "Settings",
    "get_settings",
    "DatabaseConfig",
]
