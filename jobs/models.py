"""
Background job records.

A job is a persisted unit of deferred work. Its status only moves forward:

    pending -> running -> completed
                       -> failed

Terminal states are final; nothing re-queues a job automatically.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from shared.models import utcnow


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


# Allowed forward transitions
TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.RUNNING}),
    JobStatus.RUNNING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


def can_transition(current: JobStatus, target: JobStatus) -> bool:
    return JobStatus(target) in TRANSITIONS[JobStatus(current)]


class JobType(str, Enum):
    """Job types the worker registers handlers for out of the box."""
    MENU_SYNC = "menu_sync"
    INVENTORY_SYNC = "inventory_sync"
    SEND_NOTIFICATION = "send_notification"


class Job(BaseModel):
    """
    A queued background task.

    details is the handler's input; result is whatever the handler returned
    (kept for observability). error_message is only set on failure.
    """
    id: str = Field(default_factory=lambda: str(uuid4()))
    type: str = Field(..., min_length=1, description="Selects the registered handler")
    status: JobStatus = Field(default=JobStatus.PENDING)
    restaurant_id: Optional[str] = None
    channels: list[str] = Field(default_factory=list, description="Job-type specific, e.g. sms/email")
    details: dict[str, Any] = Field(default_factory=dict)
    result: Optional[Any] = None
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(use_enum_values=True)

    @property
    def is_terminal(self) -> bool:
        return JobStatus(self.status).is_terminal


class JobCreate(BaseModel):
    """Request body for enqueueing a job."""
    type: str = Field(..., min_length=1)
    restaurant_id: Optional[str] = None
    channels: list[str] = Field(default_factory=list)
    details: dict[str, Any] = Field(default_factory=dict)
