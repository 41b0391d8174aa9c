"""
``python -m moonlit_scheduler`` starts the booking API.
"""

from .main import run

if __name__ == "__main__":
    run()
