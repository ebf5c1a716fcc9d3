"""
Realtime push of notifications to connected dashboards.

Each restaurant has one channel; every open dashboard websocket for that tenant
is subscribed to it. Delivery is best-effort: nobody connected means nobody
receives the message, broken sockets are dropped, and nothing is queued or
replayed. Dashboards reconcile through the notification list endpoint.
"""

import logging
from collections import defaultdict
from typing import Any, Protocol

from notifications.models import RealtimeMessage

logger = logging.getLogger("notification_dispatcher")

NEW_NOTIFICATION = "notifications.new"
UNREAD_COUNT_UPDATED = "notifications.unread_count.updated"


class RealtimeConnection(Protocol):
    """The part of a websocket the manager needs (FastAPI's WebSocket fits)."""

    async def send_json(self, data: Any) -> None: ...


class RestaurantConnectionManager:
    """Manage active websocket connections grouped by restaurant."""

    def __init__(self) -> None:
        self._connections: defaultdict[str, set[RealtimeConnection]] = defaultdict(set)

    def register(self, restaurant_id: str, connection: RealtimeConnection) -> None:
        self._connections[restaurant_id].add(connection)
        logger.debug(f"Connection joined restaurant-{restaurant_id}")

    async def connect(self, restaurant_id: str, websocket) -> None:
        """Accept the websocket and subscribe it to the restaurant channel."""
        await websocket.accept()
        self.register(restaurant_id, websocket)

    def disconnect(self, restaurant_id: str, connection: RealtimeConnection) -> None:
        connections = self._connections.get(restaurant_id)
        if connections is None:
            return
        connections.discard(connection)
        if not connections:
            self._connections.pop(restaurant_id, None)

    def connection_count(self, restaurant_id: str) -> int:
        return len(self._connections.get(restaurant_id, ()))

    async def send_to_restaurant(self, restaurant_id: str, message: dict[str, Any]) -> int:
        """
        Send message to every connection on the restaurant channel.

        Returns:
            Number of connections the message was written to
        """
        delivered = 0
        for connection in list(self._connections.get(restaurant_id, ())):
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.info(f"Dropping broken connection on restaurant-{restaurant_id}: {e}")
                self.disconnect(restaurant_id, connection)
            else:
                delivered += 1
        return delivered


class NotificationDispatcher:
    """
    Pushes notifications onto restaurant channels.

    Never raises: a failed or undeliverable push is an expected condition.
    """

    def __init__(self, connections: RestaurantConnectionManager):
        self.connections = connections

    async def emit_to_restaurant(self, restaurant_id: str, message: RealtimeMessage) -> int:
        return await self._emit(restaurant_id, NEW_NOTIFICATION, message.to_wire())

    async def emit_unread_count(self, restaurant_id: str, unread_count: int) -> int:
        return await self._emit(
            restaurant_id,
            UNREAD_COUNT_UPDATED,
            {"restaurantId": restaurant_id, "unreadCount": unread_count},
        )

    async def _emit(self, restaurant_id: str, event_name: str, data: dict[str, Any]) -> int:
        try:
            delivered = await self.connections.send_to_restaurant(
                restaurant_id, {"type": event_name, "data": data}
            )
        except Exception as e:
            logger.warning(f"Push of {event_name} to restaurant-{restaurant_id} failed: {e}")
            return 0

        if delivered == 0:
            logger.debug(f"No live connections for restaurant-{restaurant_id}; {event_name} not delivered")
        return delivered
