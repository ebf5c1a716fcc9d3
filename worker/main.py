"""
Background worker process.

Runs the job runner and the liveness heartbeat against the shared datastore
until SIGTERM/SIGINT, then shuts down in order: heartbeat, runner (bounded by
the shutdown grace period), datastore.

Usage:
    servio-worker
    python cli.py worker
"""

import asyncio
import logging
import signal
import sys
from typing import Optional

from jobs.handlers import register_default_handlers
from jobs.job_runner import JobRunner
from messaging.channels import MessagingChannels
from shared.config import Settings, get_settings
from shared.logging_setup import configure_logging
from shared.sql_store import SqlDataStore
from worker.heartbeat import Heartbeat

logger = logging.getLogger("worker")


class Worker:
    """Owns the runner, the heartbeat and the datastore for one worker process."""

    SIGNALS = (signal.SIGTERM, signal.SIGINT)

    def __init__(
        self,
        settings: Settings,
        store=None,
        channels: Optional[MessagingChannels] = None,
    ):
        self.settings = settings
        self.store = store or SqlDataStore.from_url(settings.database_url, echo=settings.sql_echo)
        self.channels = channels or MessagingChannels()
        self.runner = JobRunner(self.store, batch_size=settings.job_batch_size)
        self.heartbeat = Heartbeat(self.store, interval_seconds=settings.heartbeat_interval_seconds)
        self._shutdown_requested: Optional[asyncio.Event] = None

    async def startup(self) -> None:
        logger.info("Starting Servio background worker...")
        await self.store.initialize()
        await self.heartbeat.start()
        register_default_handlers(self.runner, self.channels)
        self.runner.start(poll_interval_ms=self.settings.worker_poll_interval_ms)

    def request_shutdown(self, reason: str = "shutdown requested") -> None:
        logger.info(f"{reason}, shutting down gracefully...")
        if self._shutdown_requested is not None:
            self._shutdown_requested.set()

    async def shutdown(self) -> None:
        await self.heartbeat.stop()
        self.runner.stop()
        await self.runner.join(timeout=self.settings.shutdown_grace_seconds)
        await self.store.close()
        logger.info("Worker stopped")

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in self.SIGNALS:
            try:
                loop.add_signal_handler(sig, self.request_shutdown, f"{sig.name} received")
            except (NotImplementedError, RuntimeError):
                logger.debug(f"Signal handlers not supported here, {sig.name} not installed")

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in self.SIGNALS:
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                pass

    async def run(self) -> None:
        """
        Start everything and block until shutdown is requested.

        Raises whatever startup raises; shutdown always runs once startup began.
        """
        self._shutdown_requested = asyncio.Event()
        try:
            await self.startup()
            self._install_signal_handlers()
            await self._shutdown_requested.wait()
        finally:
            self._remove_signal_handlers()
            await self.shutdown()


def main(settings: Optional[Settings] = None) -> int:
    """Run a worker until signalled. Returns the process exit code."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    try:
        asyncio.run(Worker(settings).run())
    except Exception:
        logger.exception("Failed to start worker")
        return 1
    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
