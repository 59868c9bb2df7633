"""HTTP routes: the REST surface used by polling clients.

Invariants:
    - GET on an unknown room is 404 and creates nothing
    - mutations return the fully recomputed snapshot
    - domain failures use the structured error envelope
"""

import pytest

from weather_checkin.app import create_app
from weather_checkin.config import Settings


async def _join(client, room_id, name, participant_id=None):
    body = {"name": name}
    if participant_id:
        body["participantId"] = participant_id
    res = await client.post(f"/rooms/{room_id}/join", json=body)
    assert res.status_code == 200
    return res.json()


async def test_create_room_without_body_generates_id(client):
    res = await client.post("/rooms")
    assert res.status_code == 200
    assert len(res.json()["roomId"]) == 6


async def test_create_room_with_id(client, app):
    res = await client.post("/rooms", json={"roomId": "standup"})
    assert res.json() == {"roomId": "standup"}
    assert "standup" in app.state.store


async def test_create_room_with_garbage_id_is_400(client):
    res = await client.post("/rooms", json={"roomId": "bad id"})
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_IDENTIFIER"


async def test_create_room_with_empty_id_is_400(client, app):
    res = await client.post("/rooms", json={"roomId": ""})
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_IDENTIFIER"
    assert len(app.state.store) == 0


async def test_get_unknown_room_is_404_and_not_created(client, app):
    res = await client.get("/rooms/ghost")
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "ROOM_NOT_FOUND"
    assert "ghost" not in app.state.store


async def test_join_returns_identity_and_state(client):
    body = await _join(client, "r1", "Alice")
    assert body["ok"] is True
    assert body["participantId"]
    assert body["state"]["participants"] == [{"name": "Alice", "symbol": None}]


async def test_full_round_over_http(client):
    await client.post("/rooms", json={"roomId": "r1"})
    await _join(client, "r1", "Alice", "alice")
    await _join(client, "r1", "Bob", "bob")
    await client.post("/rooms/r1/select", json={"participantId": "alice", "symbol": "sun"})
    res = await client.post("/rooms/r1/select", json={"participantId": "bob", "symbol": "rain"})
    assert res.json()["state"]["summary"] == {"sun": 1, "partly": 0, "cloud": 0, "rain": 1, "storm": 0}

    res = await client.post("/rooms/r1/end")
    assert res.json()["state"]["ended"] is True

    res = await client.post("/rooms/r1/select", json={"participantId": "alice", "symbol": "cloud"})
    assert res.status_code == 200
    assert res.json()["state"]["summary"]["sun"] == 1
    assert res.json()["state"]["summary"]["cloud"] == 0


async def test_get_state_snapshot_shape_and_headers(client):
    await _join(client, "r1", "Alice")
    res = await client.get("/rooms/r1")
    assert res.status_code == 200
    assert res.headers["cache-control"] == "no-store"
    assert float(res.headers["x-poll-interval"]) == 2.0
    assert set(res.json()) == {
        "roomId", "createdAt", "ended", "anonymous", "symbols", "participants", "summary",
    }
    assert res.json()["symbols"] == ["sun", "partly", "cloud", "rain", "storm"]


async def test_invalid_symbol_is_400_and_state_unchanged(client):
    await _join(client, "r1", "Alice", "alice")
    before = (await client.get("/rooms/r1")).json()
    res = await client.post("/rooms/r1/select", json={"participantId": "alice", "symbol": "hail"})
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_SYMBOL"
    assert (await client.get("/rooms/r1")).json() == before


async def test_select_unknown_participant_is_404(client):
    await client.post("/rooms", json={"roomId": "r1"})
    res = await client.post("/rooms/r1/select", json={"participantId": "nobody", "symbol": "sun"})
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "PARTICIPANT_NOT_FOUND"


async def test_mutation_on_unknown_room_is_404(client, app):
    res = await client.post("/rooms/ghost/end")
    assert res.status_code == 404
    assert "ghost" not in app.state.store


async def test_anonymous_toggle(client):
    await _join(client, "r1", "Alice")
    res = await client.post("/rooms/r1/anonymous", json={"anonymous": True})
    state = res.json()["state"]
    assert state["anonymous"] is True
    assert state["participants"][0]["name"] == "Alice"


async def test_leave(client):
    body = await _join(client, "r1", "Alice")
    res = await client.post("/rooms/r1/leave", json={"participantId": body["participantId"]})
    assert res.json()["state"]["participants"] == []


async def test_missing_field_is_validation_error(client):
    res = await client.post("/rooms/r1/select", json={"symbol": "sun"})
    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert any("participantId" in d["field"] for d in error["details"])


async def test_symbols_catalog(client):
    res = await client.get("/symbols")
    assert [s["key"] for s in res.json()] == ["sun", "partly", "cloud", "rain", "storm"]
    assert res.json()[0] == {"key": "sun", "label": "Sol", "emoji": "☀️"}


async def test_health_reports_mode(client):
    res = await client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"
    assert res.json()["propagation"] == "push"


@pytest.fixture
def pull_app():
    return create_app(Settings(propagation_mode="pull", poll_interval_seconds=3, room_ttl_hours=0))


async def test_pull_mode_advertises_poll_interval(pull_app):
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(transport=ASGITransport(app=pull_app), base_url="http://test") as ac:
        await ac.post("/rooms/r1/join", json={"name": "Alice"})
        res = await ac.get("/rooms/r1")
        assert float(res.headers["x-poll-interval"]) == 3.0
        assert (await ac.get("/health")).json()["propagation"] == "pull"
