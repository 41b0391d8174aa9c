"""
ASGI entry point: ``uvicorn moonlit_scheduler.main:app``.
"""

import uvicorn
from dotenv import load_dotenv

from .api.app import create_app
from .config import get_settings

load_dotenv()

settings = get_settings()
app = create_app(settings)


def run() -> None:
    """Serve the booking API with uvicorn."""
    uvicorn.run(
        "moonlit_scheduler.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
