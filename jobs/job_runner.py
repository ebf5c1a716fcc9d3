"""
Polling job runner.

Collaborators insert job rows; the runner polls for pending ones on a fixed
interval and executes the handler registered for each job's type.

Design decisions:
- One poll loop per runner; a tick finishes (its whole batch) before the next
  sleep starts, so ticks of one runner never overlap
- Claiming is the store's atomic pending -> running compare-and-swap; a job
  whose claim loses (another tick, another worker) is skipped
- Handler failures are recorded on the job (failed + error_message); they never
  stop the loop and are never retried
- A job whose type has no handler fails fast with a descriptive message rather
  than sitting in pending forever
- stop() prevents further ticks right away; an in-flight tick may finish, and
  a start() after stop() waits for it before polling again
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol

from jobs.models import Job, JobStatus

logger = logging.getLogger("job_runner")

JobHandler = Callable[[Job], Awaitable[Any]]

DEFAULT_POLL_INTERVAL_MS = 5000
DEFAULT_BATCH_SIZE = 5


class UnknownJobTypeError(LookupError):
    """Raised for a job whose type has no registered handler."""

    def __init__(self, job_type: str):
        super().__init__(f"No handler registered for job type: {job_type}")
        self.job_type = job_type


class JobStore(Protocol):
    async def list_pending_jobs(self, limit: int = ...) -> list[Job]: ...
    async def claim_job(self, job_id: str) -> bool: ...
    async def complete_job(self, job_id: str, result: Any = ...) -> bool: ...
    async def fail_job(self, job_id: str, error_message: str) -> bool: ...


class JobRunner:
    """
    Executes queued jobs with registered async handlers.

    Example:
        runner = JobRunner(store)

        async def sync_menu(job):
            return {"synced": True}

        runner.register_handler("menu_sync", sync_menu)
        runner.start(poll_interval_ms=5000)
        ...
        runner.stop()
        await runner.join()
    """

    def __init__(self, store: JobStore, batch_size: int = DEFAULT_BATCH_SIZE):
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.store = store
        self.batch_size = batch_size
        self._handlers: dict[str, JobHandler] = {}
        self._task: Optional[asyncio.Task] = None
        self._stop_requested: Optional[asyncio.Event] = None
        self.ticks = 0

    # =========================================================================
    # Handler Registry
    # =========================================================================

    def register_handler(self, job_type: str, handler: JobHandler) -> None:
        """Associate a job type with a handler; a later call for the same type wins."""
        if job_type in self._handlers:
            logger.warning(f"Replacing handler for job type: {job_type}")
        self._handlers[job_type] = handler
        logger.info(f"Registered handler for job type: {job_type}")

    def get_handler(self, job_type: str) -> Optional[JobHandler]:
        return self._handlers.get(job_type)

    @property
    def job_types(self) -> list[str]:
        return sorted(self._handlers)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def is_running(self) -> bool:
        if self._task is None or self._task.done():
            return False
        return not self._stop_requested.is_set()

    def start(self, poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS) -> None:
        """Begin polling on the running event loop."""
        if poll_interval_ms <= 0:
            raise ValueError("poll_interval_ms must be positive")
        if self.is_running:
            logger.warning("JobRunner already started")
            return

        # A stopped loop may still be finishing its last tick
        previous = self._task if self._task is not None and not self._task.done() else None
        self._stop_requested = asyncio.Event()
        self._task = asyncio.create_task(self._poll_loop(poll_interval_ms / 1000, previous))
        logger.info(f"Job Runner started with {poll_interval_ms}ms polling interval")

    def stop(self) -> None:
        """
        Stop scheduling poll ticks.

        Returns immediately. A tick already in progress is allowed to finish;
        use join() to wait for it.
        """
        if self._stop_requested is not None:
            self._stop_requested.set()
        logger.info("Job Runner stopped")

    async def join(self, timeout: Optional[float] = None) -> None:
        """
        Wait for the poll loop to exit after stop().

        With a timeout, a tick still running when it expires is cancelled; its
        job stays in running.
        """
        if self._task is None:
            return
        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout)
        except asyncio.TimeoutError:
            logger.warning("In-flight job tick did not finish in time, cancelling it")
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    async def _poll_loop(self, interval_seconds: float, previous: Optional[asyncio.Task] = None) -> None:
        stop_requested = self._stop_requested
        if previous is not None:
            await asyncio.wait([previous])
        while not stop_requested.is_set():
            await self.run_once()
            try:
                await asyncio.wait_for(stop_requested.wait(), interval_seconds)
            except asyncio.TimeoutError:
                continue

    # =========================================================================
    # Processing
    # =========================================================================

    async def run_once(self) -> int:
        """
        Run a single poll tick.

        Returns:
            Number of jobs this tick claimed and drove to a terminal state
        """
        self.ticks += 1
        try:
            jobs = await self.store.list_pending_jobs(limit=self.batch_size)
        except Exception:
            logger.exception("Error polling for jobs")
            return 0

        if jobs:
            logger.info(f"Found {len(jobs)} jobs to process")

        processed = 0
        for job in jobs:
            try:
                if await self.process_job(job):
                    processed += 1
            except Exception:
                logger.exception(f"Could not record outcome of job {job.id} ({job.type})")
        return processed

    async def process_job(self, job: Job) -> bool:
        """
        Claim and execute one job.

        Returns:
            False if the claim was lost to another runner or tick
        """
        if not await self.store.claim_job(job.id):
            logger.debug(f"Job {job.id} was already claimed, skipping")
            return False

        job.status = JobStatus.RUNNING
        handler = self._handlers.get(job.type)

        try:
            if handler is None:
                raise UnknownJobTypeError(job.type)
            result = await handler(job)
        except Exception as e:
            error_message = str(e) or type(e).__name__
            logger.error(f"Job {job.id} ({job.type}) failed: {error_message}")
            await self.store.fail_job(job.id, error_message)
            return True

        await self.store.complete_job(job.id, result)
        logger.info(f"Job {job.id} ({job.type}) completed successfully")
        return True
