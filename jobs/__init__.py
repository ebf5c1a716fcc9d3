from jobs.job_runner import JobRunner, UnknownJobTypeError
from jobs.models import Job, JobCreate, JobStatus, JobType

__all__ = ["Job", "JobCreate", "JobRunner", "JobStatus", "JobType", "UnknownJobTypeError"]
