"""
Infrastructure shared by the API process and the worker.

- Settings (pydantic-settings) and logging setup
- Liveness model and timestamp helpers
- Datastores: in-memory DataStore and the SQLAlchemy-backed SqlDataStore

Datastore modules are imported directly (shared.data_store, shared.sql_store)
since they depend on the notification and job models.
"""

from shared.config import Settings, get_settings
from shared.models import SystemHealth, WorkerStatus, utcnow, worker_status

__all__ = [
    "Settings",
    "SystemHealth",
    "WorkerStatus",
    "get_settings",
    "utcnow",
    "worker_status",
]
