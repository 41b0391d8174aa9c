"""
Logging helpers.
"""

import logging
from typing import Optional

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for the process."""
    root = logging.getLogger()
    resolved = logging.getLevelName((level or "INFO").upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    if not root.handlers:
        logging.basicConfig(level=resolved, format=_FORMAT)
    root.setLevel(resolved)


def get_logger(name: str) -> logging.Logger:
    """Return a namespaced application logger."""
    return logging.getLogger(name)
