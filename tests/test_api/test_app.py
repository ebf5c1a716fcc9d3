"""
Tests for the HTTP and websocket surface.

The app runs against an in-memory store through FastAPI's TestClient; entering
the client as a context manager runs the lifespan (bus, dispatcher, services).
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from shared.config import Settings
from shared.data_store import DataStore

LOW_STOCK = {
    "type": "inventory.low_stock",
    "payload": {"itemId": "i1", "itemName": "Tomatoes", "currentQuantity": 2, "threshold": 5},
}


@pytest.fixture
def store() -> DataStore:
    return DataStore()


@pytest.fixture
def client(settings: Settings, store: DataStore):
    with TestClient(create_app(settings=settings, store=store)) as client:
        yield client


def publish(client: TestClient, restaurant_id: str, body: dict):
    return client.post(f"/restaurants/{restaurant_id}/events", params={"wait": True}, json=body)


class TestHealth:
    """Tests for the health endpoints."""

    def test_health_check(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_worker_unknown_without_heartbeat(self, client: TestClient):
        body = client.get("/health/worker").json()

        assert body["status"] == "unknown"
        assert body["worker_last_seen_at"] is None

    def test_worker_online_with_queue_depth(self, settings: Settings):
        store = DataStore()
        asyncio.run(store.record_heartbeat())
        asyncio.run(store.add_job("menu_sync"))

        with TestClient(create_app(settings=settings, store=store)) as client:
            body = client.get("/health/worker").json()

        assert body["status"] == "online"
        assert body["pending_jobs"] == 1
        assert body["running_jobs"] == 0


class TestEvents:
    """Tests for event ingestion and the notification pull surface."""

    def test_publish_creates_notification(self, client: TestClient):
        response = publish(client, "r1", LOW_STOCK)

        assert response.status_code == 202
        assert response.json()["handlers_scheduled"] == 1

        notifications = client.get("/restaurants/r1/notifications").json()
        assert len(notifications) == 1
        assert notifications[0]["title"] == "Low Stock"
        assert notifications[0]["message"] == "Tomatoes is low on stock."
        assert client.get("/restaurants/r2/notifications").json() == []

    def test_unhandled_type_creates_nothing(self, client: TestClient):
        response = publish(client, "r1", {"type": "order.refunded", "payload": {}})

        assert response.json()["handlers_scheduled"] == 0
        assert client.get("/restaurants/r1/notifications").json() == []

    def test_order_with_contact_queues_message_job(self, client: TestClient, store: DataStore):
        publish(client, "r1", {
            "type": "order.created_web",
            "payload": {"orderId": "o1", "customerName": "Alice", "customerPhone": "+15550101"},
        })

        notifications = client.get("/restaurants/r1/notifications").json()
        assert notifications[0]["message"] == "New order placed by Alice."
        assert asyncio.run(store.count_jobs()) == 1

    def test_event_type_required(self, client: TestClient):
        response = client.post("/restaurants/r1/events", json={"type": ""})
        assert response.status_code == 422

    def test_mark_read(self, client: TestClient):
        publish(client, "r1", LOW_STOCK)
        notification_id = client.get("/restaurants/r1/notifications").json()[0]["id"]

        response = client.post(f"/restaurants/r1/notifications/{notification_id}/read")

        assert response.status_code == 200
        assert response.json()["unread_count"] == 0
        assert client.get("/restaurants/r1/notifications", params={"unread_only": True}).json() == []

    def test_mark_read_other_restaurant_is_404(self, client: TestClient):
        publish(client, "r1", LOW_STOCK)
        notification_id = client.get("/restaurants/r1/notifications").json()[0]["id"]

        response = client.post(f"/restaurants/r2/notifications/{notification_id}/read")
        assert response.status_code == 404

    def test_mark_all_read(self, client: TestClient):
        publish(client, "r1", LOW_STOCK)
        publish(client, "r1", {"type": "system.error", "payload": {"message": "Printer offline"}})

        response = client.post("/restaurants/r1/notifications/read-all")

        assert response.json() == {"updated": 2, "unread_count": 0}


class TestWebsocket:
    """Tests for the per-restaurant realtime channel."""

    def test_push_reaches_connected_dashboard(self, client: TestClient):
        with client.websocket_connect("/ws/restaurants/r1") as websocket:
            initial = websocket.receive_json()
            assert initial == {
                "type": "notifications.unread_count.updated",
                "data": {"restaurantId": "r1", "unreadCount": 0},
            }

            publish(client, "r1", LOW_STOCK)
            pushed = websocket.receive_json()

        assert pushed["type"] == "notifications.new"
        assert pushed["data"]["restaurantId"] == "r1"
        assert pushed["data"]["notification"]["title"] == "Low Stock"
        assert pushed["data"]["notification"]["isRead"] is False

    def test_ping_pong(self, client: TestClient):
        with client.websocket_connect("/ws/restaurants/r1") as websocket:
            websocket.receive_json()
            websocket.send_json({"type": "ping"})
            assert websocket.receive_json() == {"type": "pong"}

    def test_malformed_frames_keep_connection_open(self, client: TestClient):
        """Binary frames and invalid JSON are ignored rather than closing the socket."""
        with client.websocket_connect("/ws/restaurants/r1") as websocket:
            websocket.receive_json()
            websocket.send_bytes(b"\x00\x01")
            websocket.send_text("not json")
            websocket.send_json({"type": "ping"})
            assert websocket.receive_json() == {"type": "pong"}

    def test_ack_marks_read(self, client: TestClient):
        publish(client, "r1", LOW_STOCK)
        notification_id = client.get("/restaurants/r1/notifications").json()[0]["id"]

        with client.websocket_connect("/ws/restaurants/r1") as websocket:
            assert websocket.receive_json()["data"]["unreadCount"] == 1
            websocket.send_json({"type": "ack", "ids": [notification_id]})
            update = websocket.receive_json()

        assert update == {
            "type": "notifications.unread_count.updated",
            "data": {"restaurantId": "r1", "unreadCount": 0},
        }


class TestJobs:
    """Tests for job enqueue and inspection."""

    def test_enqueue_and_get(self, client: TestClient):
        response = client.post("/jobs", json={"type": "menu_sync", "restaurant_id": "r1", "channels": ["doordash"]})

        assert response.status_code == 201
        job = response.json()
        assert job["status"] == "pending"

        fetched = client.get(f"/jobs/{job['id']}").json()
        assert fetched["type"] == "menu_sync"
        assert fetched["channels"] == ["doordash"]

    def test_get_missing_job(self, client: TestClient):
        assert client.get("/jobs/nope").status_code == 404

    def test_enqueue_requires_type(self, client: TestClient):
        assert client.post("/jobs", json={"type": ""}).status_code == 422
