"""HTTP and WebSocket surface through FastAPI's TestClient."""

import time

import pytest
from fastapi.testclient import TestClient

from watchparty.core.config import Settings
from watchparty.main import create_app


@pytest.fixture
def app(settings):
    return create_app(settings)


def test_health(app):
    with TestClient(app) as client:
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json() == {"status": "ok"}


def test_room_state_and_election_defaults(app):
    with TestClient(app) as client:
        state = client.get("/room/state").json()
        assert state["paused"] is True
        assert state["currentTime"] == 0
        assert state["playbackRate"] == 1.0
        assert state["lastUpdateBy"] is None

        election = client.get("/room/election").json()
        assert election == {"votes": {}, "totalVoters": 0, "votesNeeded": 1, "adminId": None}
        assert client.get("/room/users").json() == []


def test_end_to_end_two_clients(app):
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws_a:
            sync = ws_a.receive_json()
            assert sync["type"] == "sync"
            assert sync["state"]["paused"] is True
            assert sync["state"]["currentTime"] == 0
            assert ws_a.receive_json() == {"type": "users_update", "users": [{"id": 1, "nickname": "User1"}]}

            with client.websocket_connect("/ws") as ws_b:
                assert ws_b.receive_json()["type"] == "sync"
                roster = ws_b.receive_json()
                assert roster["type"] == "users_update"
                assert [u["id"] for u in roster["users"]] == [1, 2]

                assert ws_a.receive_json() == {"type": "user_joined", "user": {"id": 2, "nickname": "User2"}}
                assert ws_a.receive_json()["type"] == "users_update"

                users = client.get("/room/users").json()
                assert [u["nickname"] for u in users] == ["User1", "User2"]

                ws_b.send_json({"type": "seek", "time": 42})
                msg = ws_a.receive_json()
                assert msg["type"] == "sync"
                assert msg["state"]["currentTime"] == 42
                assert msg["state"]["lastUpdateBy"] == 2

                ws_a.send_json({"type": "play"})
                msg = ws_b.receive_json()
                assert msg["state"]["paused"] is False
                assert msg["state"]["lastUpdateBy"] == 1

                # Rejected: client 2 outweighs client 1
                ws_b.send_json({"type": "pause"})
                ws_b.send_json({"type": "sync_request"})
                msg = ws_b.receive_json()
                assert msg["type"] == "sync"
                assert msg["state"]["paused"] is False
                assert msg["state"]["lastUpdateBy"] == 1

            left = ws_a.receive_json()
            assert left == {"type": "user_left", "userId": 2}
            assert ws_a.receive_json() == {"type": "users_update", "users": [{"id": 1, "nickname": "User1"}]}


def test_broadcast_endpoint_reaches_all_clients(app):
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.receive_json()
            r = client.post("/room/broadcast", json={"content": "Movie night starts soon"})
            assert r.status_code == 202
            msg = ws.receive_json()
            assert msg["type"] == "system"
            assert msg["username"] == "server"
            assert msg["content"] == "Movie night starts soon"


def test_broadcast_endpoint_rejects_blank_content(app):
    with TestClient(app) as client:
        r = client.post("/room/broadcast", json={"content": "   "})
        assert r.status_code == 400


def test_binary_frames_are_handled_like_text(app):
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws_a:
            ws_a.receive_json()
            ws_a.receive_json()
            with client.websocket_connect("/ws") as ws_b:
                ws_b.receive_json()
                ws_b.receive_json()
                ws_a.receive_json()
                ws_a.receive_json()

                ws_b.send_bytes(b'{"type": "seek", "time": 5}')
                msg = ws_a.receive_json()
                assert msg["type"] == "sync"
                assert msg["state"]["currentTime"] == 5

                # Undecodable bytes are dropped and the socket stays open
                ws_b.send_bytes(b"\x80\x81\xff")
                ws_b.send_text('{"type": "sync_request"}')
                msg = ws_b.receive_json()
                assert msg["type"] == "sync"
                assert msg["state"]["currentTime"] == 5
                assert [u["id"] for u in client.get("/room/users").json()] == [1, 2]


def test_ticker_advances_time_while_playing():
    app = create_app(Settings(tick_interval_s=0.05))
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.receive_json()
            ws.send_json({"type": "play"})
            deadline = time.monotonic() + 5.0
            state = client.get("/room/state").json()
            while state["currentTime"] <= 0 and time.monotonic() < deadline:
                time.sleep(0.05)
                state = client.get("/room/state").json()
            assert state["currentTime"] > 0
            assert state["paused"] is False
            assert state["lastUpdateBy"] == 1


def test_each_app_ticks_its_own_room():
    playing = create_app(Settings(tick_interval_s=0.05))
    idle = create_app(Settings(tick_interval_s=0.05))
    # The idle app starts last, so a shared ticker target would point at it
    with TestClient(playing) as client, TestClient(idle) as idle_client:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.receive_json()
            ws.send_json({"type": "play"})
            deadline = time.monotonic() + 5.0
            while client.get("/room/state").json()["currentTime"] <= 0 and time.monotonic() < deadline:
                time.sleep(0.05)
            assert client.get("/room/state").json()["currentTime"] > 0
        assert idle_client.get("/room/state").json()["currentTime"] == 0
