"""
Moonlit Scheduler: patient booking wizard backed by a hosted database.
"""

__version__ = "1.0.0"
