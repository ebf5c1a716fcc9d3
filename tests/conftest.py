"""
Shared pytest fixtures for the notification pipeline tests.

Async tests run on asyncio through the anyio pytest plugin; every fixture hands
out a fresh instance so tests never share state.
"""

from pathlib import Path
from typing import Any

import pytest

from events.event_bus import EventBus
from messaging.channels import EmailChannel, MessagingChannels, SMSChannel
from notifications.dispatcher import NotificationDispatcher, RestaurantConnectionManager
from shared.config import Settings
from shared.data_store import DataStore


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class RecordingConnection:
    """A websocket stand-in that keeps everything sent to it."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[dict[str, Any]] = []

    async def send_json(self, data: Any) -> None:
        if self.fail:
            raise ConnectionError("socket closed")
        self.sent.append(data)


# =============================================================================
# Stores
# =============================================================================

@pytest.fixture
def memory_store() -> DataStore:
    """Fresh in-memory DataStore for each test."""
    return DataStore()


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """A file-backed SQLite database, one per test (in-memory SQLite is per connection)."""
    return f"sqlite+aiosqlite:///{tmp_path / 'servio-test.db'}"


# =============================================================================
# Pipeline components
# =============================================================================

@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def connections() -> RestaurantConnectionManager:
    return RestaurantConnectionManager()


@pytest.fixture
def dispatcher(connections: RestaurantConnectionManager) -> NotificationDispatcher:
    return NotificationDispatcher(connections)


@pytest.fixture
def dashboard(connections: RestaurantConnectionManager) -> RecordingConnection:
    """One live dashboard connection subscribed to restaurant r1."""
    connection = RecordingConnection()
    connections.register("r1", connection)
    return connection


@pytest.fixture
def email_channel() -> EmailChannel:
    return EmailChannel(fail_rate=0.0)


@pytest.fixture
def sms_channel() -> SMSChannel:
    return SMSChannel(fail_rate=0.0)


@pytest.fixture
def channels() -> MessagingChannels:
    """Fresh MessagingChannels facade for each test."""
    return MessagingChannels(email_fail_rate=0.0, sms_fail_rate=0.0)


@pytest.fixture
def settings(database_url: str) -> Settings:
    """Settings with fast cadences, isolated from the environment's .env."""
    return Settings(
        _env_file=None,
        database_url=database_url,
        worker_poll_interval_ms=20,
        heartbeat_interval_seconds=0.05,
        shutdown_grace_seconds=1.0,
    )


@pytest.fixture
def make_connection():
    """Factory for extra RecordingConnections (pass fail=True for a broken socket)."""
    return RecordingConnection
