"""
External service module.
"""

from .service import HostedDatabaseService, in_list

__all__ = [
    "HostedDatabaseService",
    "in_list",
]
