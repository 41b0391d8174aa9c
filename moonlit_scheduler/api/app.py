"""
FastAPI application factory and configuration.
"""

import asyncio
from contextlib import asynccontextmanager, suppress
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import DatabaseConfig, Settings, get_settings
from ..services import (
    BookingFlowController,
    BookingService,
    DirectoryService,
    HostedDatabaseService,
    SessionStore,
)
from ..utils.date import DateParser
from ..utils.logging import configure_logging
from .middleware import SecurityHeaders, LoggingMiddleware
from .handlers import BookingHandler, HealthHandler


def build_session_store(settings: Settings, database: HostedDatabaseService) -> SessionStore:
    """Wire the database-backed services into a session store."""
    date_parser = DateParser(settings.timezone)
    directory = DirectoryService(database, settings, date_parser)
    booking_service = BookingService(database, settings)

    def new_controller() -> BookingFlowController:
        return BookingFlowController(directory, booking_service, date_parser=date_parser)

    return SessionStore(new_controller, idle_seconds=settings.session_idle_seconds)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[SessionStore] = None,
    database: Optional[HostedDatabaseService] = None,
) -> FastAPI:
    """Create and configure FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    if database is None:
        database = HostedDatabaseService(DatabaseConfig.from_settings(settings))
    if store is None:
        store = build_session_store(settings, database)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.session_sweeper = asyncio.create_task(
            store.sweep(settings.session_sweep_seconds)
        )
        try:
            yield
        finally:
            app.state.session_sweeper.cancel()
            with suppress(asyncio.CancelledError):
                await app.state.session_sweeper

    app = FastAPI(
        title=settings.app_name,
        description="Patient booking wizard for Moonlit",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(SecurityHeaders)
    app.add_middleware(LoggingMiddleware)

    health_handler = HealthHandler(settings, database, store)
    booking_handler = BookingHandler(store)

    app.include_router(health_handler.router, prefix="/health", tags=["health"])
    app.include_router(booking_handler.router, prefix="/booking", tags=["booking"])

    return app
