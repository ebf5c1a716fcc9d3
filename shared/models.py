"""
Cross-cutting models shared by the worker, the job runner and the API.

Design decisions:
- Using Pydantic for validation and serialization
- All timestamps are timezone-aware UTC; stores normalize naive values on read
- The liveness record is a single logical row keyed "global"
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

SYSTEM_HEALTH_ID = "global"


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class WorkerStatus(str, Enum):
    """Liveness verdict derived from the heartbeat record."""
    ONLINE = "online"
    STALE = "stale"
    UNKNOWN = "unknown"     # no heartbeat was ever written


class SystemHealth(BaseModel):
    """
    The worker liveness record.

    Upserted by the worker heartbeat; read by the health endpoint and by any
    external monitor that alerts when worker_last_seen_at gets old.
    """
    id: str = Field(default=SYSTEM_HEALTH_ID)
    worker_last_seen_at: datetime = Field(..., description="Last heartbeat write")
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(use_enum_values=True)

    def age(self, now: Optional[datetime] = None) -> timedelta:
        now = now or utcnow()
        return now - as_utc(self.worker_last_seen_at)


def worker_status(
    health: Optional[SystemHealth],
    stale_after: timedelta,
    now: Optional[datetime] = None,
) -> WorkerStatus:
    """Classify the worker as online, stale or unknown."""
    if health is None:
        return WorkerStatus.UNKNOWN
    if health.age(now) > stale_after:
        return WorkerStatus.STALE
    return WorkerStatus.ONLINE
