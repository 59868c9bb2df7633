"""WebSocket push transport: join, broadcast, errors and disconnect cleanup."""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from weather_checkin.app import create_app
from weather_checkin.config import Settings


def _join(ws, name):
    ws.send_json({"type": "join", "name": name})
    return ws.receive_json()


def test_welcome_carries_presented_identity(app):
    with TestClient(app) as tc:
        with tc.websocket_connect("/ws/r1?participantId=alice") as ws:
            assert ws.receive_json() == {
                "type": "welcome",
                "data": {"roomId": "r1", "participantId": "alice"},
            }


def test_welcome_generates_identity_when_missing(app):
    with TestClient(app) as tc:
        with tc.websocket_connect("/ws/r1") as ws:
            welcome = ws.receive_json()
            assert len(welcome["data"]["participantId"]) == 32


def test_state_is_broadcast_to_everyone_in_the_room(app):
    with TestClient(app) as tc:
        with tc.websocket_connect("/ws/r1?participantId=alice") as alice:
            alice.receive_json()
            state = _join(alice, "Alice")
            assert state["type"] == "state"
            assert state["data"]["participants"] == [{"name": "Alice", "symbol": None}]

            with tc.websocket_connect("/ws/r1?participantId=bob") as bob:
                bob.receive_json()
                _join(bob, "Bob")
                seen_by_alice = alice.receive_json()
                assert [p["name"] for p in seen_by_alice["data"]["participants"]] == ["Alice", "Bob"]

                bob.send_json({"type": "select", "symbol": "rain"})
                assert bob.receive_json()["data"]["summary"]["rain"] == 1
                assert alice.receive_json()["data"]["summary"]["rain"] == 1

            # Bob's socket closed: his participant record goes with it.
            after_leave = alice.receive_json()
            assert [p["name"] for p in after_leave["data"]["participants"]] == ["Alice"]
            assert after_leave["data"]["summary"]["rain"] == 0


def test_end_round_and_anonymous_over_websocket(app):
    with TestClient(app) as tc:
        with tc.websocket_connect("/ws/r1?participantId=alice") as ws:
            ws.receive_json()
            _join(ws, "Alice")
            ws.send_json({"type": "select", "symbol": "sun"})
            ws.receive_json()
            ws.send_json({"type": "end_round"})
            assert ws.receive_json()["data"]["ended"] is True
            ws.send_json({"type": "toggle_anonymous", "anonymous": True})
            state = ws.receive_json()["data"]
            assert state["anonymous"] is True
            assert state["participants"][0]["symbol"] == "sun"


def test_select_after_end_is_silent(app):
    with TestClient(app) as tc:
        with tc.websocket_connect("/ws/r1?participantId=alice") as ws:
            ws.receive_json()
            _join(ws, "Alice")
            ws.send_json({"type": "end_round"})
            ws.receive_json()
            ws.send_json({"type": "select", "symbol": "storm"})
            ws.send_json({"type": "get_state"})
            # The ignored selection produced no message; the next one is the reply.
            reply = ws.receive_json()
            assert reply["type"] == "state"
            assert reply["data"]["participants"][0]["symbol"] is None


def test_errors_come_back_as_events(app):
    with TestClient(app) as tc:
        with tc.websocket_connect("/ws/r1?participantId=alice") as ws:
            ws.receive_json()
            _join(ws, "Alice")
            ws.send_json({"type": "select", "symbol": "hail"})
            assert ws.receive_json()["error"]["code"] == "INVALID_SYMBOL"
            ws.send_text("{not json")
            assert ws.receive_json()["error"]["code"] == "UNKNOWN_MESSAGE"
            ws.send_json({"type": "fly"})
            assert ws.receive_json()["error"]["code"] == "UNKNOWN_MESSAGE"


def test_get_state_for_unknown_room_is_null(app):
    with TestClient(app) as tc:
        with tc.websocket_connect("/ws/nowhere") as ws:
            ws.receive_json()
            ws.send_json({"type": "get_state"})
            assert ws.receive_json() == {"type": "state", "data": None}
        assert "nowhere" not in app.state.store


def test_http_mutation_is_pushed_to_websocket(app):
    with TestClient(app) as tc:
        with tc.websocket_connect("/ws/r1?participantId=alice") as ws:
            ws.receive_json()
            _join(ws, "Alice")
            tc.post("/rooms/r1/select", json={"participantId": "alice", "symbol": "partly"})
            assert ws.receive_json()["data"]["summary"]["partly"] == 1


def test_bad_identity_is_refused(app):
    with TestClient(app) as tc:
        with pytest.raises(WebSocketDisconnect) as exc:
            with tc.websocket_connect("/ws/r1?participantId=has%20space") as ws:
                ws.receive_json()
        assert exc.value.code == 4000


def test_pull_mode_refuses_websockets():
    app = create_app(Settings(propagation_mode="pull", room_ttl_hours=0, log_format="text"))
    with TestClient(app) as tc:
        with pytest.raises(WebSocketDisconnect) as exc:
            with tc.websocket_connect("/ws/r1") as ws:
                ws.receive_json()
        assert exc.value.code == 4005
