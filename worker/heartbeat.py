"""
Worker liveness heartbeat.

The worker upserts the single "global" system_health row on a fixed cadence.
Anything that wants to know whether a worker is alive (the health endpoint, an
external monitor) reads worker_last_seen_at and compares it with the clock.
"""

import asyncio
import logging
from typing import Optional, Protocol

from shared.models import SystemHealth

logger = logging.getLogger("heartbeat")

DEFAULT_INTERVAL_SECONDS = 30.0


class HealthStore(Protocol):
    async def record_heartbeat(self) -> SystemHealth: ...


class Heartbeat:
    """
    Periodic liveness writer.

    A failed write is logged and skipped; the next interval tries again.
    """

    def __init__(self, store: HealthStore, interval_seconds: float = DEFAULT_INTERVAL_SECONDS):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.store = store
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self.beats = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def beat(self) -> Optional[SystemHealth]:
        """Write one heartbeat; returns None if the write failed."""
        try:
            health = await self.store.record_heartbeat()
        except Exception as e:
            logger.warning(f"Failed to update heartbeat: {e}")
            return None
        self.beats += 1
        logger.debug(f"Heartbeat recorded at {health.worker_last_seen_at.isoformat()}")
        return health

    async def start(self) -> None:
        """Beat once right away, then keep beating every interval."""
        if self.is_running:
            logger.warning("Heartbeat already started")
            return
        await self.beat()
        self._task = asyncio.create_task(self._loop())

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.beat()

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
