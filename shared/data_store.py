"""
In-memory data store.

Implements the same async interface as SqlDataStore (notifications, jobs and
the liveness record) on plain dicts. Tests, the demo and single-process
deployments without a database use it.

Design decisions:
- One asyncio event loop owns the store; every read-check-write sequence runs
  without an await in between, so status transitions are atomic
- Records are copied on the way in and out so callers cannot mutate state
- Nothing is persisted across restarts
"""

from typing import Any, Optional
from uuid import uuid4

from jobs.models import Job, JobStatus, can_transition
from notifications.models import Notification, NotificationDraft, NotificationRef
from shared.models import SYSTEM_HEALTH_ID, SystemHealth, utcnow


class DataStore:
    """
    Dict-backed store.

    Example:
        store = DataStore()
        job = await store.add_job("menu_sync", details={"menuId": "m1"})
        claimed = await store.claim_job(job.id)   # True once, False afterwards
    """

    def __init__(self):
        self._notifications: dict[str, Notification] = {}
        self._jobs: dict[str, Job] = {}
        self._system_health: dict[str, SystemHealth] = {}

    async def initialize(self) -> None:
        """Nothing to prepare; present for parity with SqlDataStore."""

    async def close(self) -> None:
        """Nothing to release."""

    # =========================================================================
    # Notification Operations
    # =========================================================================

    async def create_notification(
        self,
        restaurant_id: str,
        event_type: str,
        draft: NotificationDraft,
    ) -> NotificationRef:
        """Persist a draft and return its assigned id and creation time."""
        ref = NotificationRef(id=str(uuid4()), created_at=utcnow())
        notification = Notification.from_draft(ref, restaurant_id, event_type, draft)
        self._notifications[ref.id] = notification
        return ref

    async def get_notification(self, notification_id: str) -> Optional[Notification]:
        notification = self._notifications.get(notification_id)
        return notification.model_copy(deep=True) if notification else None

    async def list_notifications(
        self,
        restaurant_id: str,
        limit: int = 50,
        unread_only: bool = False,
    ) -> list[Notification]:
        """Newest first, scoped to one restaurant."""
        rows = [
            n for n in self._notifications.values()
            if n.restaurant_id == restaurant_id and not (unread_only and n.is_read)
        ]
        rows.sort(key=lambda n: n.created_at, reverse=True)
        return [n.model_copy(deep=True) for n in rows[:limit]]

    async def count_unread(self, restaurant_id: str) -> int:
        return sum(
            1 for n in self._notifications.values()
            if n.restaurant_id == restaurant_id and not n.is_read
        )

    async def mark_read(self, restaurant_id: str, notification_id: str) -> bool:
        """
        Flag one notification as read.

        Returns:
            False if the notification does not exist for this restaurant
        """
        notification = self._notifications.get(notification_id)
        if notification is None or notification.restaurant_id != restaurant_id:
            return False
        notification.is_read = True
        return True

    async def mark_all_read(self, restaurant_id: str) -> int:
        changed = 0
        for notification in self._notifications.values():
            if notification.restaurant_id == restaurant_id and not notification.is_read:
                notification.is_read = True
                changed += 1
        return changed

    # =========================================================================
    # Job Operations
    # =========================================================================

    async def add_job(
        self,
        job_type: str,
        details: Optional[dict[str, Any]] = None,
        channels: Optional[list[str]] = None,
        restaurant_id: Optional[str] = None,
    ) -> Job:
        """Enqueue a pending job."""
        job = Job(
            type=job_type,
            details=details or {},
            channels=channels or [],
            restaurant_id=restaurant_id,
        )
        self._jobs[job.id] = job
        return job.model_copy(deep=True)

    async def get_job(self, job_id: str) -> Optional[Job]:
        job = self._jobs.get(job_id)
        return job.model_copy(deep=True) if job else None

    async def list_pending_jobs(self, limit: int = 5) -> list[Job]:
        """Pending jobs, oldest first."""
        pending = [j for j in self._jobs.values() if j.status == JobStatus.PENDING]
        pending.sort(key=lambda j: j.created_at)
        return [j.model_copy(deep=True) for j in pending[:limit]]

    async def count_jobs(self, status: Optional[JobStatus] = None) -> int:
        if status is None:
            return len(self._jobs)
        return sum(1 for j in self._jobs.values() if j.status == JobStatus(status))

    async def claim_job(self, job_id: str) -> bool:
        """
        Atomically move a job from pending to running.

        Returns:
            True for exactly one caller per job; False if it was already
            claimed, finished, or does not exist
        """
        job = self._jobs.get(job_id)
        if job is None or job.status != JobStatus.PENDING:
            return False
        job.status = JobStatus.RUNNING
        job.started_at = utcnow()
        return True

    async def complete_job(self, job_id: str, result: Any = None) -> bool:
        return self._finish(job_id, JobStatus.COMPLETED, result=result)

    async def fail_job(self, job_id: str, error_message: str) -> bool:
        return self._finish(job_id, JobStatus.FAILED, error_message=error_message)

    def _finish(
        self,
        job_id: str,
        status: JobStatus,
        result: Any = None,
        error_message: Optional[str] = None,
    ) -> bool:
        job = self._jobs.get(job_id)
        if job is None or not can_transition(job.status, status):
            return False
        job.status = status
        job.result = result
        job.error_message = error_message
        job.completed_at = utcnow()
        return True

    # =========================================================================
    # System Health Operations
    # =========================================================================

    async def record_heartbeat(self) -> SystemHealth:
        """Upsert the liveness row; worker_last_seen_at never moves backwards."""
        now = utcnow()
        current = self._system_health.get(SYSTEM_HEALTH_ID)
        if current is None:
            current = SystemHealth(worker_last_seen_at=now, updated_at=now)
            self._system_health[SYSTEM_HEALTH_ID] = current
        else:
            current.worker_last_seen_at = max(current.worker_last_seen_at, now)
            current.updated_at = now
        return current.model_copy()

    async def get_system_health(self) -> Optional[SystemHealth]:
        health = self._system_health.get(SYSTEM_HEALTH_ID)
        return health.model_copy() if health else None
