"""
Health check handler.

``/ready`` checks the hosted database with a one-row payer query, so a bad
service key or an unreachable gateway takes the instance out of rotation.
"""

import time
from datetime import datetime, timezone
from typing import Optional
from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from ...config import Settings, get_settings
from ...core.exceptions import DatabaseRequestError
from ...services.external import HostedDatabaseService
from ...services.session import SessionStore
from ...utils.logging import get_logger

logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    timestamp: str
    version: str
    uptime: float
    active_sessions: Optional[int] = None


class HealthHandler:
    """Liveness, readiness and status endpoints."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        database: Optional[HostedDatabaseService] = None,
        store: Optional[SessionStore] = None,
    ):
        self.settings = settings or get_settings()
        self.database = database
        self.store = store
        self._started = time.monotonic()
        self.router = APIRouter()
        self._setup_routes()

    async def _database_problem(self) -> Optional[str]:
        if self.database is None or not self.database.config.is_configured():
            return "database not configured"
        try:
            await self.database.select("payers", columns="id", limit=1)
        except DatabaseRequestError as e:
            logger.warning("readiness check failed: %s", e)
            return "database unreachable"
        return None

    def _setup_routes(self):
        @self.router.get("/", response_model=HealthResponse)
        async def health_check():
            return HealthResponse(
                status="healthy",
                timestamp=datetime.now(timezone.utc).isoformat(),
                version=self.settings.app_version,
                uptime=round(time.monotonic() - self._started, 3),
                active_sessions=len(self.store) if self.store is not None else None,
            )

        @self.router.get("/ready")
        async def readiness_check(response: Response):
            problem = await self._database_problem()
            if problem:
                response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
                return {"status": "not_ready", "reason": problem}
            return {"status": "ready"}

        @self.router.get("/live")
        async def liveness_check():
            return {"status": "alive"}
