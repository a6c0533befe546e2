"""
Tests for the HTTP and WebSocket API.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from blobcalc.config import Config
from blobcalc.server import app
from blobcalc.services import SessionStore
from blobcalc.ws_types import MAX_AREA_SIDE, MAX_BLOB_COUNT, MAX_RENDER_CAP


@pytest.fixture
def client():
    """Test client with the lifespan (session store) running."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def session_id(client):
    response = client.post("/api/sessions")
    assert response.status_code == 201
    return response.json()["session_id"]


class TestHttpApi:
    """Test REST endpoints."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_correlation_id_echoed(self, client):
        response = client.get("/health", headers={"X-Correlation-ID": "req_abc"})
        assert response.headers["X-Correlation-ID"] == "req_abc"

    def test_new_session_starts_at_zero(self, client):
        data = client.post("/api/sessions").json()
        assert data["equation"] == "0"
        assert data["sum"] == 0

    def test_press_keys(self, client, session_id):
        """Should apply keys and report each outcome."""
        response = client.post(
            f"/api/sessions/{session_id}/keys",
            json={"keys": ["1", "2", "+", "+", "3"]},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["equation"] == "12+3"
        assert data["terms"] == [12, 3]
        assert data["sum"] == 15
        assert [r["applied"] for r in data["results"]] == [True, True, True, False, True]
        assert data["results"][3]["reason"] == "operator already pending"

    def test_rejected_key_is_not_an_error(self, client, session_id):
        response = client.post(f"/api/sessions/{session_id}/keys", json={"keys": ["x"]})
        assert response.status_code == 200
        assert response.json()["results"][0]["applied"] is False

    def test_empty_key_list_rejected(self, client, session_id):
        response = client.post(f"/api/sessions/{session_id}/keys", json={"keys": []})
        assert response.status_code == 422

    def test_get_session(self, client, session_id):
        client.post(f"/api/sessions/{session_id}/keys", json={"keys": ["9"]})
        data = client.get(f"/api/sessions/{session_id}").json()
        assert data["equation"] == "9"

    def test_unknown_session(self, client):
        assert client.get("/api/sessions/missing").status_code == 404
        assert client.post("/api/sessions/missing/keys", json={"keys": ["1"]}).status_code == 404

    def test_delete_session(self, client, session_id):
        assert client.delete(f"/api/sessions/{session_id}").status_code == 200
        assert client.get(f"/api/sessions/{session_id}").status_code == 404

    def test_session_layout(self, client, session_id):
        """Layout should carry palette colors per term."""
        client.post(f"/api/sessions/{session_id}/keys", json={"keys": ["2", "+", "1"]})
        data = client.post(
            f"/api/sessions/{session_id}/layout",
            json={"width": 300, "height": 200},
        ).json()
        assert [p["color_index"] for p in data["positions"]] == [0, 0, 1]
        assert all(p["color"] for p in data["positions"])
        for p in data["positions"]:
            assert p["x"] + data["diameter"] <= 300
            assert p["y"] + data["diameter"] <= 200

    def test_stateless_layout(self, client):
        response = client.post("/api/layout", json={
            "width": 100,
            "height": 100,
            "counts": [{"count": 30, "color_index": 0}, {"count": 30, "color_index": 1}],
            "render_cap": 20,
        })
        assert response.status_code == 200
        data = response.json()
        assert len(data["positions"]) <= 20
        assert data["dropped"] == 60 - len(data["positions"])

    def test_stateless_layout_zero_area(self, client):
        data = client.post("/api/layout", json={
            "width": 0,
            "height": 100,
            "counts": [{"count": 3}],
        }).json()
        assert data["positions"] == []
        assert data["diameter"] == 20.0

    def test_negative_count_rejected(self, client):
        response = client.post("/api/layout", json={
            "width": 10, "height": 10, "counts": [{"count": -1}],
        })
        assert response.status_code == 422

    def test_huge_count_bounded_by_render_cap(self, client):
        """The default render cap bounds placement for any request."""
        response = client.post("/api/layout", json={
            "width": MAX_AREA_SIDE,
            "height": MAX_AREA_SIDE,
            "counts": [{"count": MAX_BLOB_COUNT}],
        })
        assert response.status_code == 200
        data = response.json()
        assert len(data["positions"]) <= app.state.config.render_cap
        assert data["dropped"] == MAX_BLOB_COUNT - len(data["positions"])

    def test_huge_term_bounded_by_render_cap(self, client, session_id):
        client.post(f"/api/sessions/{session_id}/keys", json={"keys": list("9999999999")})
        data = client.post(
            f"/api/sessions/{session_id}/layout",
            json={"width": MAX_AREA_SIDE, "height": MAX_AREA_SIDE},
        ).json()
        assert len(data["positions"]) <= app.state.config.render_cap
        assert data["dropped"] == 9999999999 - len(data["positions"])

    @pytest.mark.parametrize("body", [
        {"width": 10, "height": 10, "counts": [{"count": MAX_BLOB_COUNT + 1}]},
        {"width": MAX_AREA_SIDE * 10, "height": 10, "counts": [{"count": 1}]},
        {"width": 10, "height": 10, "counts": [], "render_cap": MAX_RENDER_CAP + 1},
    ])
    def test_oversized_request_rejected(self, client, body):
        assert client.post("/api/layout", json=body).status_code == 422

    def test_oversized_session_area_rejected(self, client, session_id):
        response = client.post(
            f"/api/sessions/{session_id}/layout",
            json={"width": 10, "height": MAX_AREA_SIDE * 10},
        )
        assert response.status_code == 422

    def test_min_diameter_above_max_rejected(self, client):
        response = client.post("/api/layout", json={
            "width": 100, "height": 100, "counts": [{"count": 3}],
            "min_diameter": 10, "max_diameter": 5,
        })
        assert response.status_code == 422

    def test_min_diameter_above_configured_max_rejected(self, client):
        """Only min_diameter given, but above the server's max_diameter."""
        response = client.post("/api/layout", json={
            "width": 100, "height": 100, "counts": [{"count": 3}],
            "min_diameter": app.state.config.max_diameter + 1,
        })
        assert response.status_code == 422

    def test_max_diameter_below_configured_min_rejected(self, client):
        response = client.post("/api/layout", json={
            "width": 100, "height": 100, "counts": [{"count": 3}],
            "max_diameter": app.state.config.min_diameter / 2,
        })
        assert response.status_code == 422


class TestWebSocket:
    """Test the /ws endpoint."""

    def test_key_presses(self, client):
        with client.websocket_connect("/ws") as ws:
            for key in ["1", "2", "+", "3"]:
                ws.send_json({"type": "key", "key": key})
                message = ws.receive_json()
            assert message["type"] == "state"
            assert message["equation"] == "12+3"
            assert message["sum"] == 15
            assert message["applied"] is True

    def test_rejected_press_reported(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "key", "key": "0"})
            message = ws.receive_json()
            assert message["applied"] is False
            assert message["equation"] == "0"

    def test_layout(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "key", "key": "4"})
            ws.receive_json()
            ws.send_json({"type": "layout", "width": 200, "height": 100, "correlation_id": "c1"})
            message = ws.receive_json()
            assert message["type"] == "layout_result"
            assert message["correlation_id"] == "c1"
            assert len(message["positions"]) == 4

    def test_resume_session(self, client, session_id):
        client.post(f"/api/sessions/{session_id}/keys", json={"keys": ["7", "+"]})
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "resume_session", "session_id": session_id})
            message = ws.receive_json()
            assert message["type"] == "session_state"
            assert message["is_new"] is False
            assert message["equation"] == "7+"
            ws.send_json({"type": "key", "key": "5"})
            assert ws.receive_json()["equation"] == "7+5"

    def test_ping(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "ping"})
            assert ws.receive_json()["type"] == "pong"

    def test_invalid_json(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_text("{not json")
            message = ws.receive_json()
            assert message["type"] == "error"
            assert message["content"] == "Invalid JSON"

    def test_unknown_type(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "divide"})
            message = ws.receive_json()
            assert message["type"] == "error"
            assert "divide" in message["content"]

    def test_oversized_layout_reported_as_error(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "layout", "width": MAX_AREA_SIDE * 10, "height": 10})
            assert ws.receive_json()["type"] == "error"

    def test_ping_only_connection_creates_no_session(self, client):
        store = app.state.sessions
        before = len(store)
        for _ in range(5):
            with client.websocket_connect("/ws") as ws:
                ws.send_json({"type": "ping"})
                ws.receive_json()
        assert len(store) == before

    def test_session_removed_on_disconnect(self, client):
        store = app.state.sessions
        before = len(store)
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "key", "key": "3"})
            sid = ws.receive_json()["session_id"]
            assert sid in store
        assert sid not in store
        assert len(store) == before

    def test_resume_drops_connection_session(self, client, session_id):
        """Switching to an existing session leaves no orphan behind."""
        store = app.state.sessions
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "key", "key": "3"})
            own_id = ws.receive_json()["session_id"]
            ws.send_json({"type": "resume_session", "session_id": session_id})
            ws.receive_json()
            assert own_id not in store
            assert len(store) == 1
        assert session_id in store
        assert len(store) == 1


class TestAsyncClient:
    """Exercise the app over ASGI without the lifespan."""

    @pytest.fixture
    def fresh_state(self):
        app.state.config = Config()
        app.state.sessions = SessionStore(app.state.config)
        return app.state.sessions

    @pytest.mark.asyncio
    async def test_keys_over_asgi(self, fresh_state):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            created = await client.post("/api/sessions")
            sid = created.json()["session_id"]
            response = await client.post(f"/api/sessions/{sid}/keys", json={"keys": list("5+5+5")})
        assert response.json()["sum"] == 15
        assert len(fresh_state) == 1
