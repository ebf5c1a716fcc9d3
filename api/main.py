"""
FastAPI application for the Servio notification pipeline.

This application provides:
1. Event ingestion (/restaurants/{id}/events) feeding the in-process bus
2. The notification pull/ack surface dashboards reconcile with
3. A websocket per restaurant for realtime pushes
4. Job enqueue/inspection and worker health

Run with:
    uvicorn api.main:app --reload
    python cli.py serve
"""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from events.event_bus import Actor, ActorKind, DomainEvent, EventBus
from jobs.models import Job, JobCreate, JobStatus
from messaging.order_messages import OrderMessageSubscriber
from notifications.dispatcher import NotificationDispatcher, RestaurantConnectionManager
from notifications.models import Notification
from notifications.notification_service import NotificationService
from shared.config import Settings, get_settings
from shared.logging_setup import configure_logging
from shared.models import worker_status
from shared.sql_store import SqlDataStore

logger = logging.getLogger("api")


# Request / response models
class ActorIn(BaseModel):
    kind: ActorKind = ActorKind.USER
    id: Optional[str] = None
    display_name: Optional[str] = None


class EventIn(BaseModel):
    """A domain event posted by a collaborating service."""
    type: str = Field(..., min_length=1)
    payload: dict[str, Any] = Field(default_factory=dict)
    actor: Optional[ActorIn] = None


class EventAccepted(BaseModel):
    event_id: str
    type: str
    handlers_scheduled: int


class ReadAllResult(BaseModel):
    updated: int
    unread_count: int


class WorkerHealth(BaseModel):
    status: str
    worker_last_seen_at: Optional[str] = None
    age_seconds: Optional[float] = None
    pending_jobs: int
    running_jobs: int
    failed_jobs: int


def create_app(settings: Optional[Settings] = None, store=None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Runtime settings (defaults to the environment)
        store: Datastore to use instead of one built from settings.database_url
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        logger.info("Starting Servio notification API")

        data_store = store or SqlDataStore.from_url(settings.database_url, echo=settings.sql_echo)
        await data_store.initialize()

        bus = EventBus()
        connections = RestaurantConnectionManager()
        dispatcher = NotificationDispatcher(connections)
        notification_service = NotificationService(bus, data_store, dispatcher)
        order_messages = OrderMessageSubscriber(bus, data_store)
        notification_service.start()
        order_messages.start()

        app.state.settings = settings
        app.state.store = data_store
        app.state.bus = bus
        app.state.connections = connections
        app.state.dispatcher = dispatcher
        try:
            yield
        finally:
            notification_service.stop()
            order_messages.stop()
            await bus.drain()
            await data_store.close()
            logger.info("Shutting down")

    app = FastAPI(
        title="Servio Notification Pipeline",
        description="Restaurant domain events in, dashboard notifications and background jobs out.",
        version="1.0.0",
        lifespan=lifespan,
    )
    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:

    # =========================================================================
    # Health
    # =========================================================================

    @app.get("/health", tags=["Health"])
    def health_check():
        return {"status": "healthy", "service": "servio-notification-pipeline"}

    @app.get("/health/worker", response_model=WorkerHealth, tags=["Health"])
    async def worker_health(request: Request):
        """Worker liveness from the heartbeat row, plus queue depth."""
        store = request.app.state.store
        settings: Settings = request.app.state.settings

        health = await store.get_system_health()
        status = worker_status(health, timedelta(seconds=settings.heartbeat_stale_after_seconds))
        return WorkerHealth(
            status=status.value,
            worker_last_seen_at=health.worker_last_seen_at.isoformat() if health else None,
            age_seconds=round(health.age().total_seconds(), 3) if health else None,
            pending_jobs=await store.count_jobs(JobStatus.PENDING),
            running_jobs=await store.count_jobs(JobStatus.RUNNING),
            failed_jobs=await store.count_jobs(JobStatus.FAILED),
        )

    # =========================================================================
    # Events
    # =========================================================================

    @app.post(
        "/restaurants/{restaurant_id}/events",
        response_model=EventAccepted,
        status_code=202,
        tags=["Events"],
    )
    async def publish_event(
        restaurant_id: str,
        body: EventIn,
        request: Request,
        wait: bool = Query(False, description="Wait for handlers to finish before responding"),
    ):
        """
        Publish a domain event on the bus.

        Handlers run in the background; with wait=true the response is sent
        after every handler scheduled so far has finished.
        """
        bus: EventBus = request.app.state.bus
        actor = None
        if body.actor is not None:
            actor = Actor(kind=body.actor.kind, id=body.actor.id, display_name=body.actor.display_name)

        event = DomainEvent(restaurant_id=restaurant_id, type=body.type, payload=body.payload, actor=actor)
        scheduled = bus.emit(event)
        if wait:
            await bus.drain()
        return EventAccepted(event_id=event.event_id, type=event.type, handlers_scheduled=scheduled)

    # =========================================================================
    # Notifications
    # =========================================================================

    @app.get(
        "/restaurants/{restaurant_id}/notifications",
        response_model=list[Notification],
        tags=["Notifications"],
    )
    async def list_notifications(
        restaurant_id: str,
        request: Request,
        limit: int = Query(50, ge=1, le=200),
        unread_only: bool = False,
    ):
        """Newest first. Dashboards call this to catch up on missed pushes."""
        return await request.app.state.store.list_notifications(
            restaurant_id, limit=limit, unread_only=unread_only
        )

    @app.post("/restaurants/{restaurant_id}/notifications/{notification_id}/read", tags=["Notifications"])
    async def mark_notification_read(restaurant_id: str, notification_id: str, request: Request):
        store = request.app.state.store
        if not await store.mark_read(restaurant_id, notification_id):
            raise HTTPException(status_code=404, detail=f"Notification {notification_id} not found")

        unread = await store.count_unread(restaurant_id)
        await request.app.state.dispatcher.emit_unread_count(restaurant_id, unread)
        return {"id": notification_id, "is_read": True, "unread_count": unread}

    @app.post(
        "/restaurants/{restaurant_id}/notifications/read-all",
        response_model=ReadAllResult,
        tags=["Notifications"],
    )
    async def mark_all_notifications_read(restaurant_id: str, request: Request):
        store = request.app.state.store
        updated = await store.mark_all_read(restaurant_id)
        await request.app.state.dispatcher.emit_unread_count(restaurant_id, 0)
        return ReadAllResult(updated=updated, unread_count=0)

    @app.websocket("/ws/restaurants/{restaurant_id}")
    async def restaurant_websocket(websocket: WebSocket, restaurant_id: str):
        """
        Realtime channel for one restaurant's dashboards.

        Server -> client: "notifications.new", "notifications.unread_count.updated"
        and "pong". Client -> server: {"type": "ping"} and
        {"type": "ack", "ids": [...]} to mark notifications read.
        """
        store = websocket.app.state.store
        connections: RestaurantConnectionManager = websocket.app.state.connections
        dispatcher: NotificationDispatcher = websocket.app.state.dispatcher

        await connections.connect(restaurant_id, websocket)
        try:
            await websocket.send_json({
                "type": "notifications.unread_count.updated",
                "data": {"restaurantId": restaurant_id, "unreadCount": await store.count_unread(restaurant_id)},
            })
            while True:
                try:
                    message = await websocket.receive_json()
                except (ValueError, KeyError, TypeError):
                    # Malformed JSON or a binary frame
                    continue

                if not isinstance(message, dict):
                    continue

                message_type = message.get("type")
                if message_type == "ping":
                    await websocket.send_json({"type": "pong"})
                elif message_type == "ack":
                    ids = message.get("ids", [])
                    if isinstance(ids, list) and ids:
                        for notification_id in ids:
                            await store.mark_read(restaurant_id, str(notification_id))
                        await dispatcher.emit_unread_count(restaurant_id, await store.count_unread(restaurant_id))
        except WebSocketDisconnect:
            logger.debug(f"Websocket left restaurant-{restaurant_id}")
        finally:
            connections.disconnect(restaurant_id, websocket)

    # =========================================================================
    # Jobs
    # =========================================================================

    @app.post("/jobs", response_model=Job, status_code=201, tags=["Jobs"])
    async def enqueue_job(body: JobCreate, request: Request):
        """Queue a job for the worker; it runs on the next poll tick."""
        return await request.app.state.store.add_job(
            body.type,
            details=body.details,
            channels=body.channels,
            restaurant_id=body.restaurant_id,
        )

    @app.get("/jobs/{job_id}", response_model=Job, tags=["Jobs"])
    async def get_job(job_id: str, request: Request):
        job = await request.app.state.store.get_job(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
        return job


app = create_app()
