"""
SQLAlchemy-backed data store.

Same async interface as the in-memory DataStore, persisted in a relational
database (SQLite through aiosqlite locally, PostgreSQL through asyncpg in
production). One engine is shared by the notification pipeline, the job runner
and the heartbeat.

Design decisions:
- Every operation opens a short session; no session outlives a call
- Job status transitions are conditional UPDATEs (WHERE status = <expected>),
  so a job is claimed by exactly one runner even when ticks or workers overlap
- The heartbeat is an INSERT .. ON CONFLICT DO UPDATE guarded so the
  timestamp never moves backwards
"""

import logging
from typing import Any, Optional
from uuid import uuid4

from pydantic_core import to_jsonable_python
from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncEngine

from jobs.models import TRANSITIONS, Job, JobStatus
from notifications.models import Notification, NotificationDraft, NotificationRef
from shared.database import (
    JobRow,
    NotificationRow,
    SystemHealthRow,
    create_engine,
    create_session_factory,
    create_tables,
)
from shared.models import SYSTEM_HEALTH_ID, SystemHealth, as_utc, utcnow

logger = logging.getLogger("sql_store")


class SqlDataStore:
    """
    Relational store for notifications, jobs and worker liveness.

    Example:
        store = SqlDataStore.from_url("sqlite+aiosqlite:///./servio.db")
        await store.initialize()
        ...
        await store.close()
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session = create_session_factory(engine)

    @classmethod
    def from_url(cls, url: str, echo: bool = False) -> "SqlDataStore":
        return cls(create_engine(url, echo=echo))

    async def initialize(self) -> None:
        await create_tables(self.engine)

    async def close(self) -> None:
        await self.engine.dispose()
        logger.info("Database connection closed")

    # =========================================================================
    # Notification Operations
    # =========================================================================

    async def create_notification(
        self,
        restaurant_id: str,
        event_type: str,
        draft: NotificationDraft,
    ) -> NotificationRef:
        ref = NotificationRef(id=str(uuid4()), created_at=utcnow())
        row = NotificationRow(
            id=ref.id,
            restaurant_id=restaurant_id,
            type=event_type,
            severity=draft.severity,
            title=draft.title,
            message=draft.message,
            metadata_=to_jsonable_python(draft.metadata),
            recipients=[r.model_dump(mode="json") for r in draft.recipients],
            created_at=ref.created_at,
            is_read=False,
        )
        async with self._session() as session:
            session.add(row)
            await session.commit()
        return ref

    async def get_notification(self, notification_id: str) -> Optional[Notification]:
        async with self._session() as session:
            row = await session.get(NotificationRow, notification_id)
            return _notification_from_row(row) if row else None

    async def list_notifications(
        self,
        restaurant_id: str,
        limit: int = 50,
        unread_only: bool = False,
    ) -> list[Notification]:
        query = select(NotificationRow).where(NotificationRow.restaurant_id == restaurant_id)
        if unread_only:
            query = query.where(NotificationRow.is_read.is_(False))
        query = query.order_by(NotificationRow.created_at.desc()).limit(limit)

        async with self._session() as session:
            rows = (await session.scalars(query)).all()
        return [_notification_from_row(row) for row in rows]

    async def count_unread(self, restaurant_id: str) -> int:
        query = select(func.count()).select_from(NotificationRow).where(
            NotificationRow.restaurant_id == restaurant_id,
            NotificationRow.is_read.is_(False),
        )
        async with self._session() as session:
            return int(await session.scalar(query) or 0)

    async def mark_read(self, restaurant_id: str, notification_id: str) -> bool:
        statement = (
            update(NotificationRow)
            .where(
                NotificationRow.id == notification_id,
                NotificationRow.restaurant_id == restaurant_id,
            )
            .values(is_read=True)
        )
        async with self._session() as session:
            result = await session.execute(statement)
            await session.commit()
        return result.rowcount == 1

    async def mark_all_read(self, restaurant_id: str) -> int:
        statement = (
            update(NotificationRow)
            .where(
                NotificationRow.restaurant_id == restaurant_id,
                NotificationRow.is_read.is_(False),
            )
            .values(is_read=True)
        )
        async with self._session() as session:
            result = await session.execute(statement)
            await session.commit()
        return result.rowcount

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
        job = Job(
            type=job_type,
            details=details or {},
            channels=channels or [],
            restaurant_id=restaurant_id,
        )
        row = JobRow(
            id=job.id,
            type=job.type,
            status=JobStatus.PENDING.value,
            restaurant_id=job.restaurant_id,
            channels=list(job.channels),
            details=to_jsonable_python(job.details),
            created_at=job.created_at,
        )
        async with self._session() as session:
            session.add(row)
            await session.commit()
        return job

    async def get_job(self, job_id: str) -> Optional[Job]:
        async with self._session() as session:
            row = await session.get(JobRow, job_id)
            return _job_from_row(row) if row else None

    async def list_pending_jobs(self, limit: int = 5) -> list[Job]:
        query = (
            select(JobRow)
            .where(JobRow.status == JobStatus.PENDING.value)
            .order_by(JobRow.created_at.asc(), JobRow.id.asc())
            .limit(limit)
        )
        async with self._session() as session:
            rows = (await session.scalars(query)).all()
        return [_job_from_row(row) for row in rows]

    async def count_jobs(self, status: Optional[JobStatus] = None) -> int:
        query = select(func.count()).select_from(JobRow)
        if status is not None:
            query = query.where(JobRow.status == JobStatus(status).value)
        async with self._session() as session:
            return int(await session.scalar(query) or 0)

    async def claim_job(self, job_id: str) -> bool:
        """Compare-and-swap pending -> running; True for exactly one caller."""
        return await self._transition(
            job_id,
            JobStatus.PENDING,
            JobStatus.RUNNING,
            started_at=utcnow(),
        )

    async def complete_job(self, job_id: str, result: Any = None) -> bool:
        return await self._transition(
            job_id,
            JobStatus.RUNNING,
            JobStatus.COMPLETED,
            result=to_jsonable_python(result, fallback=str),
            completed_at=utcnow(),
        )

    async def fail_job(self, job_id: str, error_message: str) -> bool:
        return await self._transition(
            job_id,
            JobStatus.RUNNING,
            JobStatus.FAILED,
            error_message=error_message,
            completed_at=utcnow(),
        )

    async def _transition(
        self,
        job_id: str,
        expected: JobStatus,
        target: JobStatus,
        **values: Any,
    ) -> bool:
        if target not in TRANSITIONS[expected]:
            raise ValueError(f"Illegal job transition {expected.value} -> {target.value}")

        statement = (
            update(JobRow)
            .where(JobRow.id == job_id, JobRow.status == expected.value)
            .values(status=target.value, **values)
        )
        async with self._session() as session:
            result = await session.execute(statement)
            await session.commit()
        return result.rowcount == 1

    # =========================================================================
    # System Health Operations
    # =========================================================================

    async def record_heartbeat(self) -> SystemHealth:
        now = utcnow()
        insert = pg_insert if self.engine.dialect.name == "postgresql" else sqlite_insert
        statement = insert(SystemHealthRow).values(
            id=SYSTEM_HEALTH_ID,
            worker_last_seen_at=now,
            updated_at=now,
        )
        statement = statement.on_conflict_do_update(
            index_elements=[SystemHealthRow.id],
            set_={
                "worker_last_seen_at": statement.excluded.worker_last_seen_at,
                "updated_at": statement.excluded.updated_at,
            },
            where=SystemHealthRow.worker_last_seen_at <= statement.excluded.worker_last_seen_at,
        )
        async with self._session() as session:
            await session.execute(statement)
            await session.commit()
            row = await session.get(SystemHealthRow, SYSTEM_HEALTH_ID, populate_existing=True)
            return _health_from_row(row)

    async def get_system_health(self) -> Optional[SystemHealth]:
        async with self._session() as session:
            row = await session.get(SystemHealthRow, SYSTEM_HEALTH_ID)
            return _health_from_row(row) if row else None


# =============================================================================
# Row conversion
# =============================================================================

def _notification_from_row(row: NotificationRow) -> Notification:
    return Notification(
        id=row.id,
        restaurant_id=row.restaurant_id,
        type=row.type,
        severity=row.severity,
        title=row.title,
        message=row.message,
        metadata=row.metadata_ or {},
        recipients=row.recipients or [],
        created_at=as_utc(row.created_at),
        is_read=bool(row.is_read),
    )


def _job_from_row(row: JobRow) -> Job:
    return Job(
        id=row.id,
        type=row.type,
        status=row.status,
        restaurant_id=row.restaurant_id,
        channels=row.channels or [],
        details=row.details or {},
        result=row.result,
        error_message=row.error_message,
        created_at=as_utc(row.created_at),
        started_at=as_utc(row.started_at),
        completed_at=as_utc(row.completed_at),
    )


def _health_from_row(row: SystemHealthRow) -> SystemHealth:
    return SystemHealth(
        id=row.id,
        worker_last_seen_at=as_utc(row.worker_last_seen_at),
        updated_at=as_utc(row.updated_at),
    )
