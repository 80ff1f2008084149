"""
End-to-end tests for the FastAPI app.

Uses Starlette's TestClient for the HTTP endpoints and a real /ws
WebSocket session per player.

Run with: pytest test_main.py -v
"""

import pytest
from fastapi.testclient import TestClient

import main


@pytest.fixture
def client():
    for code in list(main.room_manager.rooms):
        main.room_manager.remove_room(code)
    with TestClient(main.app) as c:
        yield c


def receive_until(ws, msg_type: str, limit: int = 20) -> dict:
    """Read messages until one of msg_type arrives."""
    for _ in range(limit):
        message = ws.receive_json()
        if message["type"] == msg_type:
            return message
    raise AssertionError(f"no {msg_type} message received")


class TestHttp:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_ready(self, client):
        response = client.get("/ready")
        assert response.status_code == 200

    def test_metrics(self, client):
        data = client.get("/metrics").json()
        assert data["active_rooms"] == 0
        assert data["connected_websockets"] >= 0
        assert data["rooms_by_state"] == {"lobby": 0, "playing": 0, "ended": 0}

    def test_rooms_empty(self, client):
        assert client.get("/api/rooms").json() == {"rooms": []}


class TestWebSocket:

    def test_create_join_and_start(self, client):
        with client.websocket_connect("/ws") as host, client.websocket_connect("/ws") as guest:
            host.send_json({"type": "create_room", "player_name": "Host"})
            created = receive_until(host, "room_created")
            code = created["room_code"]

            assert [r["room_code"] for r in client.get("/api/rooms").json()["rooms"]] == [code]

            guest.send_json({"type": "join_room", "room_code": code, "player_name": "Guest"})
            joined = receive_until(guest, "room_joined")
            assert len(joined["room"]["players"]) == 2

            host.send_json({"type": "set_ready", "is_ready": True})
            receive_until(host, "ack")
            guest.send_json({"type": "set_ready", "is_ready": True})
            receive_until(guest, "ack")

            host.send_json({"type": "start_game"})
            host_state = receive_until(host, "game_started")["game_state"]
            guest_state = receive_until(guest, "game_started")["game_state"]

            assert len(host_state["hand"]) == 7
            assert len(guest_state["hand"]) == 7
            assert {c["id"] for c in host_state["hand"]}.isdisjoint(c["id"] for c in guest_state["hand"])
            assert host_state["current_player_id"] == created["player_id"]

            guest.send_json({"type": "draw_card"})
            error = receive_until(guest, "error")
            assert error["code"] == "not_your_turn"

    def test_bad_payload_keeps_connection_open(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "play_card"})
            assert receive_until(ws, "error")["code"] == "invalid_request"
            ws.send_json({"type": "list_rooms"})
            assert receive_until(ws, "room_list")["rooms"] == []

    def test_non_json_frame_keeps_player_seated(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "create_room", "player_name": "Host"})
            code = receive_until(ws, "room_created")["room_code"]

            ws.send_text("not json")
            error = receive_until(ws, "error")
            assert error["code"] == "invalid_request"
            assert error["action"] is None

            ws.send_json({"type": "list_rooms"})
            rooms = receive_until(ws, "room_list")["rooms"]
            assert [r["room_code"] for r in rooms] == [code]
            assert main.room_manager.get_room(code) is not None

    def test_disconnect_leaves_room(self, client):
        with client.websocket_connect("/ws") as host:
            host.send_json({"type": "create_room", "player_name": "Host"})
            receive_until(host, "room_created")
            assert len(main.room_manager.rooms) == 1

        # The server notices the close on its own loop; poll until it has
        for _ in range(50):
            if client.get("/api/rooms").json() == {"rooms": []}:
                break
        assert main.room_manager.rooms == {}
