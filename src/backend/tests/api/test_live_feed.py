"""
Tests for the live issue feed WebSocket.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect


@pytest.fixture
def sync_client():
    from main import app

    with TestClient(app) as client:
        yield client


def _demo_token(client: TestClient) -> str:
    return client.post("/api/v1/auth/demo", json={"role": "student"}).json()["access_token"]


@pytest.mark.unit
class TestLiveFeed:
    """Snapshot streaming."""

    def test_first_message_is_current_snapshot(self, sync_client: TestClient) -> None:
        token = _demo_token(sync_client)
        headers = {"Authorization": f"Bearer {token}"}
        created = sync_client.post(
            "/api/v1/issues",
            json={"title": "Broken AC", "description": "Room 204", "category_id": "facility"},
            headers=headers,
        ).json()

        with sync_client.websocket_connect(f"/api/v1/issues/live?token={token}") as websocket:
            snapshot = websocket.receive_json()

        assert [issue["id"] for issue in snapshot] == [created["id"]]
        assert snapshot[0]["category_label"] == "Facility"

    def test_empty_slot_sends_empty_snapshot(self, sync_client: TestClient) -> None:
        token = _demo_token(sync_client)

        with sync_client.websocket_connect(f"/api/v1/issues/live?token={token}") as websocket:
            assert websocket.receive_json() == []

    def test_invalid_token_is_refused(self, sync_client: TestClient) -> None:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with sync_client.websocket_connect("/api/v1/issues/live?token=bogus") as websocket:
                websocket.receive_json()

        assert exc_info.value.code == 1008


@pytest.mark.unit
class TestOfferLatest:
    """A slow client only ever has the newest snapshot waiting."""

    def test_newer_snapshot_replaces_pending_one(self, make_issue) -> None:
        from api.v1.issues import offer_latest

        queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        first, second, third = [make_issue()], [make_issue(), make_issue()], []

        offer_latest(queue, first)
        offer_latest(queue, second)
        offer_latest(queue, third)

        assert queue.qsize() == 1
        assert queue.get_nowait() is third

    def test_empty_queue_accepts_snapshot(self, make_issue) -> None:
        from api.v1.issues import offer_latest

        queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        snapshot = [make_issue()]

        offer_latest(queue, snapshot)

        assert queue.get_nowait() is snapshot
