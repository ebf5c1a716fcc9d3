"""
HTTP and websocket surface of the notification pipeline.

- Event ingestion onto the in-process bus
- Notification list/read endpoints and the per-restaurant websocket
- Job enqueue/inspection and worker health
"""

from api.main import app, create_app

__all__ = ["app", "create_app"]
