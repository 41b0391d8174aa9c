import asyncio
from datetime import timedelta

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from conftest import IDENTITY, walk_to_confirm
from moonlit_scheduler.api import create_app
from moonlit_scheduler.config import DatabaseConfig, Settings
from moonlit_scheduler.core.enums import BookingStep
from moonlit_scheduler.core.exceptions import SubmissionError
from moonlit_scheduler.services.booking import BookingFlowController
from moonlit_scheduler.services.external import HostedDatabaseService
from moonlit_scheduler.services.session import SessionStore


@pytest.fixture
def store(mock_directory, mock_booking_service, date_parser):
    return SessionStore(
        lambda: BookingFlowController(mock_directory, mock_booking_service, date_parser=date_parser)
    )


def _database(settings, status_code=200):
    transport = httpx.MockTransport(lambda request: httpx.Response(status_code, json=[]))
    return HostedDatabaseService(DatabaseConfig.from_settings(settings), transport=transport)


@pytest.fixture
def app(settings, store):
    return create_app(settings=settings, store=store, database=_database(settings))


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _start(client):
    resp = await client.post("/booking/sessions")
    assert resp.status_code == 201
    return resp.json()["session_id"]


@pytest.mark.asyncio
async def test_health_endpoints(client):
    resp = await client.get("/health/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
    assert resp.json()["active_sessions"] == 0
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert resp.headers["Cache-Control"] == "no-store"

    assert (await client.get("/health/live")).json() == {"status": "alive"}
    assert (await client.get("/health/ready")).status_code == 200


@pytest.mark.asyncio
async def test_not_ready_without_database_key(store):
    settings = Settings(_env_file=None, database_service_key=None)
    app = create_app(settings=settings, store=store, database=_database(settings))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.get("/health/ready")
    assert resp.status_code == 503
    assert resp.json()["reason"] == "database not configured"


@pytest.mark.asyncio
async def test_not_ready_when_database_fails(settings, store):
    app = create_app(settings=settings, store=store, database=_database(settings, 500))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.get("/health/ready")
    assert resp.status_code == 503
    assert resp.json()["reason"] == "database unreachable"


@pytest.mark.asyncio
async def test_start_session(client):
    resp = await client.post("/booking/sessions")
    body = resp.json()

    assert body["step"] == "welcome"
    assert body["step_index"] == 0
    assert body["draft"]["version"] == 0

    fetched = await client.get(f"/booking/sessions/{body['session_id']}")
    assert fetched.json()["step"] == "welcome"


@pytest.mark.asyncio
async def test_unknown_session_is_404(client):
    resp = await client.post("/booking/sessions/nope/advance")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_validation_error_returned_in_body(client):
    session_id = await _start(client)
    await client.post(f"/booking/sessions/{session_id}/intent", json={"is_for_self": True})

    resp = await client.post(f"/booking/sessions/{session_id}/advance")

    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is False
    assert body["step"] == "identity"
    assert body["error"]["kind"] == "validation"
    assert "first_name" in body["error"]["fields"]


@pytest.mark.asyncio
async def test_draft_patch_and_version_conflict(client):
    session_id = await _start(client)
    body = (await client.post(
        f"/booking/sessions/{session_id}/intent", json={"is_for_self": True}
    )).json()
    version = body["draft"]["version"]

    resp = await client.patch(
        f"/booking/sessions/{session_id}/draft",
        json={"updates": IDENTITY, "expected_version": version},
    )
    assert resp.json()["ok"] is True
    assert resp.json()["draft"]["phone"] == "8015550123"

    stale = await client.patch(
        f"/booking/sessions/{session_id}/draft",
        json={"updates": {"first_name": "Sam"}, "expected_version": version},
    )
    assert stale.status_code == 409


@pytest.mark.asyncio
async def test_draft_patch_rejects_unknown_fields(client):
    session_id = await _start(client)

    resp = await client.patch(
        f"/booking/sessions/{session_id}/draft", json={"updates": {"step": "confirm"}}
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_full_booking_over_http(client, date_parser, slot):
    session_id = await _start(client)
    base = f"/booking/sessions/{session_id}"

    await client.post(f"{base}/intent", json={"is_for_self": True})
    await client.patch(f"{base}/draft", json={"updates": IDENTITY})
    assert (await client.post(f"{base}/advance")).json()["step"] == "payer"

    payers = (await client.post(f"{base}/payers")).json()
    assert [p["id"] for p in payers["options"]["payers"]] == ["payer-acme", "payer-slow"]
    await client.patch(f"{base}/draft", json={"updates": {"payer_id": "payer-acme"}})
    assert (await client.post(f"{base}/advance")).json()["step"] == "provider"

    await client.post(f"{base}/providers", json={})
    await client.patch(f"{base}/draft", json={"updates": {"provider_id": "dr-lee"}})
    assert (await client.post(f"{base}/advance")).json()["step"] == "slot"

    day = (date_parser.today() + timedelta(days=2)).isoformat()
    slots = (await client.post(f"{base}/slots", json={"date": day})).json()
    assert slots["options"]["slots_date"] == day
    await client.patch(
        f"{base}/draft", json={"updates": {"slot_start": slot.start_time.isoformat()}}
    )
    assert (await client.post(f"{base}/advance")).json()["step"] == "confirm"

    done = (await client.post(f"{base}/submit")).json()
    assert done["ok"] is True
    assert done["step"] == "submitted"
    assert done["booking"] == {"booking_id": "appt-1", "confirmation_code": "K7Q2ZP"}


@pytest.mark.asyncio
async def test_submit_failure_keeps_confirm(client, mock_booking_service, store):
    session_id = await _start(client)
    await walk_to_confirm(await store.get(session_id))
    mock_booking_service.create_booking.side_effect = SubmissionError("down")

    body = (await client.post(f"/booking/sessions/{session_id}/submit")).json()

    assert body["ok"] is False
    assert body["step"] == "confirm"
    assert body["error"]["kind"] == "submission"
    assert body["error"]["retryable"] is True
    assert body["draft"]["provider_id"] == "dr-lee"


@pytest.mark.asyncio
async def test_submit_from_wrong_step(client, mock_booking_service):
    session_id = await _start(client)

    body = (await client.post(f"/booking/sessions/{session_id}/submit")).json()

    assert body["ok"] is False
    assert body["step"] == "welcome"
    mock_booking_service.create_booking.assert_not_called()


@pytest.mark.asyncio
async def test_payer_search(client, mock_directory):
    session_id = await _start(client)
    controller_resp = await client.post(
        f"/booking/sessions/{session_id}/intent", json={"is_for_self": True}
    )
    assert controller_resp.json()["step"] == "identity"
    await client.patch(f"/booking/sessions/{session_id}/draft", json={"updates": IDENTITY})
    await client.post(f"/booking/sessions/{session_id}/advance")

    resp = await client.get(f"/booking/sessions/{session_id}/payers/search", params={"q": "acm"})

    assert resp.json()["options"]["payer_results"][0]["name"] == "Acme Health"
    mock_directory.search_payers.assert_awaited_once_with("acm")


@pytest.mark.asyncio
async def test_back_and_abandon(client):
    session_id = await _start(client)
    base = f"/booking/sessions/{session_id}"
    await client.post(f"{base}/intent", json={"is_for_self": False, "scenario": "case_manager"})

    back = (await client.post(f"{base}/back")).json()
    assert back["step"] == "welcome"

    resp = await client.delete(base)
    assert resp.json() == {"session_id": session_id, "step": "abandoned"}
    assert (await client.get(base)).status_code == 404


@pytest.mark.asyncio
async def test_abandon_conflicts_with_submit_in_flight(client, mock_booking_service, store):
    session_id = await _start(client)
    controller = await store.get(session_id)
    await walk_to_confirm(controller)
    release = asyncio.Event()
    result = mock_booking_service.create_booking.return_value

    async def slow_booking(_draft):
        await release.wait()
        return result

    mock_booking_service.create_booking.side_effect = slow_booking
    task = asyncio.create_task(controller.submit())
    await asyncio.sleep(0)

    resp = await client.delete(f"/booking/sessions/{session_id}")
    assert resp.status_code == 409

    release.set()
    assert await task
    body = (await client.get(f"/booking/sessions/{session_id}")).json()
    assert body["step"] == "submitted"
    assert body["booking"]["booking_id"] == "appt-1"


@pytest.mark.asyncio
async def test_lifespan_runs_session_sweeper(settings, store):
    settings = settings.model_copy(update={"session_sweep_seconds": 0.01})
    store.idle_seconds = 0
    app = create_app(settings=settings, store=store, database=_database(settings))
    _, controller = await store.create()

    async with app.router.lifespan_context(app):
        sweeper = app.state.session_sweeper
        for _ in range(50):
            if not len(store):
                break
            await asyncio.sleep(0.01)
        assert len(store) == 0
        assert controller.state.step == BookingStep.ABANDONED
        assert not sweeper.done()

    assert sweeper.cancelled()
