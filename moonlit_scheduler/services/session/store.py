"""
In-process registry of booking sessions.

Each session owns exactly one flow controller. Sessions idle for longer than
``idle_seconds`` are abandoned and dropped, discarding their drafts.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from ...core.enums import BookingStep
from ...core.exceptions import BookingValidationError
from ...utils.logging import get_logger
from ..booking import BookingFlowController

logger = get_logger(__name__)


@dataclass
class _Session:
    controller: BookingFlowController
    last_seen: float


class SessionStore:
    """Keeps one booking wizard per session id."""

    def __init__(
        self,
        controller_factory: Callable[[], BookingFlowController],
        idle_seconds: int = 1800,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._factory = controller_factory
        self.idle_seconds = idle_seconds
        self._clock = clock
        self._sessions: Dict[str, _Session] = {}
        self._lock = asyncio.Lock()

    async def create(self) -> Tuple[str, BookingFlowController]:
        """Start a new wizard and return its session id."""
        session_id = uuid.uuid4().hex
        controller = self._factory()
        async with self._lock:
            self._sessions[session_id] = _Session(controller, self._clock())
        logger.info("booking session %s started", session_id)
        return session_id, controller

    async def get(self, session_id: str) -> Optional[BookingFlowController]:
        """Return the live controller for ``session_id`` and mark it active."""
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            now = self._clock()
            if self._is_idle(session, now):
                self._expire(session_id, session)
                return None
            session.last_seen = now
            return session.controller

    async def end(self, session_id: str) -> bool:
        """Abandon and drop a session.

        Raises ``BookingValidationError`` while the booking is being submitted.
        """
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return False
            if session.controller.state.submitting:
                raise BookingValidationError(
                    "The booking is being submitted and can no longer be cancelled",
                    step=BookingStep.CONFIRM,
                )
            del self._sessions[session_id]
        session.controller.abandon()
        logger.info("booking session %s ended", session_id)
        return True

    async def purge_idle(self) -> int:
        """Abandon every idle session; returns how many were dropped."""
        async with self._lock:
            now = self._clock()
            expired = [
                (sid, s)
                for sid, s in self._sessions.items()
                if self._is_idle(s, now)
            ]
            for sid, session in expired:
                self._expire(sid, session)
        return len(expired)

    async def sweep(self, interval: float) -> None:
        """Purge idle sessions every ``interval`` seconds until cancelled."""
        logger.info("idle: sweeper started, every %ss", interval)
        try:
            while True:
                await asyncio.sleep(interval)
                dropped = await self.purge_idle()
                if dropped:
                    logger.info("idle: purged %d booking sessions", dropped)
        except asyncio.CancelledError:
            logger.info("idle: sweeper stopped")
            raise

    def _is_idle(self, session: _Session, now: float) -> bool:
        # A submit in flight keeps the session alive until it settles.
        if session.controller.state.submitting:
            return False
        return now - session.last_seen > self.idle_seconds

    def _expire(self, session_id: str, session: _Session) -> None:
        self._sessions.pop(session_id, None)
        session.controller.abandon()
        logger.info("idle: booking session %s abandoned", session_id)

    def __len__(self) -> int:
        return len(self._sessions)
