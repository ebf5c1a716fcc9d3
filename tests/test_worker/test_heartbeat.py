"""
Tests for the worker liveness heartbeat.
"""

import asyncio

import pytest

from shared.data_store import DataStore
from worker.heartbeat import Heartbeat

pytestmark = pytest.mark.anyio


class FlakyStore(DataStore):
    """Fails the first heartbeat write, then recovers."""

    def __init__(self):
        super().__init__()
        self.calls = 0

    async def record_heartbeat(self):
        self.calls += 1
        if self.calls == 1:
            raise ConnectionError("database unreachable")
        return await super().record_heartbeat()


class TestHeartbeat:
    async def test_beat_writes_global_row(self, memory_store: DataStore):
        health = await Heartbeat(memory_store).beat()

        assert health.id == "global"
        assert await memory_store.get_system_health() is not None

    async def test_failed_beat_is_swallowed(self, caplog):
        """A failed write is logged as a warning and the next one still happens."""
        store = FlakyStore()
        heartbeat = Heartbeat(store)

        with caplog.at_level("WARNING", logger="heartbeat"):
            assert await heartbeat.beat() is None
        assert "Failed to update heartbeat" in caplog.text

        assert await heartbeat.beat() is not None
        assert heartbeat.beats == 1

    async def test_start_beats_immediately_then_periodically(self, memory_store: DataStore):
        heartbeat = Heartbeat(memory_store, interval_seconds=0.01)

        await heartbeat.start()
        assert heartbeat.beats == 1
        assert heartbeat.is_running

        await asyncio.sleep(0.1)
        await heartbeat.stop()

        assert heartbeat.beats > 1
        assert not heartbeat.is_running

    async def test_stop_halts_beats(self, memory_store: DataStore):
        heartbeat = Heartbeat(memory_store, interval_seconds=0.01)
        await heartbeat.start()
        await heartbeat.stop()

        beats = heartbeat.beats
        await asyncio.sleep(0.05)
        assert heartbeat.beats == beats

    def test_interval_must_be_positive(self, memory_store: DataStore):
        with pytest.raises(ValueError):
            Heartbeat(memory_store, interval_seconds=0)
