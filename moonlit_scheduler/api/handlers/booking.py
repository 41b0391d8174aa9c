"""
Booking wizard handler.

Every route returns the full wizard snapshot. Validation and submission
failures come back as ``error`` in a 200 response with the step unchanged.
"""

from datetime import date
from typing import Any, Dict, Optional
from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict

from ...core.enums import BookingScenario
from ...core.exceptions import BookingFlowError, DraftVersionError
from ...core.models import BookingDraftUpdate
from ...services.booking import BookingFlowController
from ...services.session import SessionStore


class IntentRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    is_for_self: bool
    scenario: Optional[BookingScenario] = None


class DraftPatchRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    updates: BookingDraftUpdate
    expected_version: Optional[int] = None


class ProvidersRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    on_date: Optional[date] = None


class SlotsRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # ISO date or a phrase like "next tuesday"
    date: str


class BookingHandler:
    """Handler for booking wizard sessions."""

    def __init__(self, store: SessionStore):
        self.store = store
        self.router = APIRouter()
        self._setup_routes()

    async def _controller(self, session_id: str) -> BookingFlowController:
        controller = await self.store.get(session_id)
        if controller is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Booking session not found or expired",
            )
        return controller

    @staticmethod
    def _respond(
        session_id: str, controller: BookingFlowController, ok: Optional[bool] = None
    ) -> Dict[str, Any]:
        body = {"session_id": session_id, **controller.to_dict()}
        if ok is not None:
            body["ok"] = ok
        return body

    def _setup_routes(self):
        """Setup booking wizard routes."""

        @self.router.post("/sessions", status_code=status.HTTP_201_CREATED)
        async def start_session():
            session_id, controller = await self.store.create()
            return self._respond(session_id, controller)

        @self.router.get("/sessions/{session_id}")
        async def get_session(session_id: str):
            controller = await self._controller(session_id)
            return self._respond(session_id, controller)

        @self.router.delete("/sessions/{session_id}")
        async def abandon_session(session_id: str):
            try:
                ended = await self.store.end(session_id)
            except BookingFlowError as e:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
            if not ended:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Booking session not found or expired",
                )
            return {"session_id": session_id, "step": "abandoned"}

        @self.router.post("/sessions/{session_id}/intent")
        async def select_intent(session_id: str, body: IntentRequest):
            controller = await self._controller(session_id)
            ok = controller.select_intent(body.is_for_self, body.scenario)
            return self._respond(session_id, controller, ok)

        @self.router.patch("/sessions/{session_id}/draft")
        async def update_draft(session_id: str, body: DraftPatchRequest):
            controller = await self._controller(session_id)
            try:
                ok = controller.update_draft(
                    body.updates, expected_version=body.expected_version
                )
            except DraftVersionError as e:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
            return self._respond(session_id, controller, ok)

        @self.router.post("/sessions/{session_id}/payers")
        async def load_payers(session_id: str):
            controller = await self._controller(session_id)
            ok = await controller.load_payers()
            return self._respond(session_id, controller, ok)

        @self.router.get("/sessions/{session_id}/payers/search")
        async def search_payers(session_id: str, q: str = Query(default="", max_length=100)):
            controller = await self._controller(session_id)
            ok = await controller.search_payers(q)
            return self._respond(session_id, controller, ok)

        @self.router.post("/sessions/{session_id}/providers")
        async def load_providers(session_id: str, body: Optional[ProvidersRequest] = None):
            controller = await self._controller(session_id)
            ok = await controller.load_providers(body.on_date if body else None)
            return self._respond(session_id, controller, ok)

        @self.router.post("/sessions/{session_id}/slots")
        async def load_slots(session_id: str, body: SlotsRequest):
            controller = await self._controller(session_id)
            ok = await controller.load_slots(body.date)
            return self._respond(session_id, controller, ok)

        @self.router.post("/sessions/{session_id}/advance")
        async def advance(session_id: str):
            controller = await self._controller(session_id)
            ok = controller.advance()
            return self._respond(session_id, controller, ok)

        @self.router.post("/sessions/{session_id}/back")
        async def back(session_id: str):
            controller = await self._controller(session_id)
            ok = controller.back()
            return self._respond(session_id, controller, ok)

        @self.router.post("/sessions/{session_id}/submit")
        async def submit(session_id: str):
            controller = await self._controller(session_id)
            ok = await controller.submit()
            return self._respond(session_id, controller, ok)
