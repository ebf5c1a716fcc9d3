"""
Tests for the order message subscriber.

Order events with customer contact details enqueue a send_notification job;
nothing is sent inline.
"""

import pytest

from events.event_bus import EventBus
from events.events import order_created, order_status_changed
from messaging.order_messages import OrderMessageSubscriber, contact_channels
from shared.data_store import DataStore

pytestmark = pytest.mark.anyio


@pytest.fixture
def subscriber(bus: EventBus, memory_store: DataStore) -> OrderMessageSubscriber:
    subscriber = OrderMessageSubscriber(bus, memory_store)
    subscriber.start()
    return subscriber


class TestContactChannels:
    def test_both(self):
        assert contact_channels({"customerPhone": "+1555", "customerEmail": "a@example.com"}) == ["sms", "email"]

    def test_opt_out(self):
        assert contact_channels({"customerPhone": "+1555", "smsOptIn": False}) == []


class TestOrderMessageSubscriber:
    """Tests for job enqueueing from order events."""

    async def test_order_created_enqueues_confirmation(
        self, bus: EventBus, subscriber: OrderMessageSubscriber, memory_store: DataStore
    ):
        bus.emit(order_created("r1", "o1", customer_name="Alice", customer_email="alice@example.com"))
        await bus.drain()

        jobs = await memory_store.list_pending_jobs()
        assert len(jobs) == 1
        job = jobs[0]
        assert job.type == "send_notification"
        assert job.restaurant_id == "r1"
        assert job.channels == ["email"]
        assert job.details["template"] == "order_confirmed"
        assert job.details["recipient"]["email"] == "alice@example.com"
        assert job.details["context"]["customer_name"] == "Alice"

    async def test_vapi_order_is_covered(
        self, bus: EventBus, subscriber: OrderMessageSubscriber, memory_store: DataStore
    ):
        bus.emit(order_created("r1", "o2", channel="vapi", customer_phone="+15550101"))
        await bus.drain()

        jobs = await memory_store.list_pending_jobs()
        assert [j.channels for j in jobs] == [["sms"]]

    async def test_status_change_enqueues_update(
        self, bus: EventBus, subscriber: OrderMessageSubscriber, memory_store: DataStore
    ):
        bus.emit(order_status_changed("r1", "o1", "preparing", "ready", customer_phone="+15550101"))
        await bus.drain()

        job = (await memory_store.list_pending_jobs())[0]
        assert job.details["template"] == "order_status_update"
        assert job.details["context"]["status"] == "ready"

    async def test_no_contact_no_job(
        self, bus: EventBus, subscriber: OrderMessageSubscriber, memory_store: DataStore
    ):
        bus.emit(order_created("r1", "o1"))
        await bus.drain()

        assert await memory_store.count_jobs() == 0

    async def test_stop_unsubscribes(self, bus: EventBus, subscriber: OrderMessageSubscriber):
        subscriber.stop()
        assert bus.subscriber_count("order.created_web") == 0
