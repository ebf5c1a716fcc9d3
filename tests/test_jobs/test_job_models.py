"""
Tests for job records and status transitions.
"""

import pytest

from jobs.models import Job, JobStatus, can_transition


class TestJobStatus:
    """Tests for the forward-only lifecycle."""

    @pytest.mark.parametrize(
        "current, target",
        [
            (JobStatus.PENDING, JobStatus.RUNNING),
            (JobStatus.RUNNING, JobStatus.COMPLETED),
            (JobStatus.RUNNING, JobStatus.FAILED),
        ],
    )
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize(
        "current, target",
        [
            (JobStatus.PENDING, JobStatus.COMPLETED),
            (JobStatus.RUNNING, JobStatus.PENDING),
            (JobStatus.COMPLETED, JobStatus.FAILED),
            (JobStatus.FAILED, JobStatus.RUNNING),
        ],
    )
    def test_rejected(self, current, target):
        assert not can_transition(current, target)

    def test_terminal_states(self):
        assert JobStatus.COMPLETED.is_terminal
        assert JobStatus.FAILED.is_terminal
        assert not JobStatus.RUNNING.is_terminal


class TestJob:
    def test_defaults(self):
        """Test that a new job is pending with empty details."""
        job = Job(type="menu_sync")

        assert job.status == "pending"
        assert job.details == {}
        assert job.channels == []
        assert job.started_at is None
        assert not job.is_terminal

    def test_type_required(self):
        with pytest.raises(ValueError):
            Job(type="")
