"""
Directory service module.
"""

from .acceptance import cash_payer, classify_payer, with_acceptance
from .service import DirectoryService

__all__ = [
    "DirectoryService",
    "cash_payer",
    "classify_payer",
    "with_acceptance",
]
