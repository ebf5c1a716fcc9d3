#!/usr/bin/env python3
"""
Command-line interface for the Servio notification pipeline.

Usage:
    python cli.py [command] [options]

Commands:
    worker      Run the background worker (job runner + heartbeat)
    serve       Start the API server
    enqueue     Queue a job in the configured database
    demo        Run an in-memory walkthrough of the pipeline
    test        Run the test suite

Examples:
    python cli.py worker
    python cli.py serve --reload
    python cli.py enqueue menu_sync --restaurant r1 --channel doordash
    python cli.py enqueue send_notification --channel sms --details '{"template": "staff_message", "recipient": {"phone": "+15550100"}, "context": {"message": "Shift starts at 5"}}'
    python cli.py demo
"""

import argparse
import asyncio
import json
import subprocess
import sys
from typing import Any, Optional


def run_worker() -> int:
    from worker.main import main as worker_main
    return worker_main()


def run_server(host: str, port: int, reload: bool) -> None:
    """Start the API server."""
    cmd = [sys.executable, "-m", "uvicorn", "api.main:app", f"--host={host}", f"--port={port}"]
    if reload:
        cmd.append("--reload")

    print(f"Starting server at http://{host}:{port}")
    print(f"API docs available at http://{host}:{port}/docs")
    subprocess.run(cmd)


async def enqueue_job(
    job_type: str,
    restaurant_id: Optional[str],
    channels: list[str],
    details: dict[str, Any],
) -> None:
    from shared.config import get_settings
    from shared.sql_store import SqlDataStore

    settings = get_settings()
    store = SqlDataStore.from_url(settings.database_url, echo=settings.sql_echo)
    await store.initialize()
    try:
        job = await store.add_job(job_type, details=details, channels=channels, restaurant_id=restaurant_id)
    finally:
        await store.close()
    print(f"Queued job {job.id} ({job.type})")


class _PrintingConnection:
    """Stands in for a dashboard websocket in the demo."""

    def __init__(self, label: str):
        self.label = label

    async def send_json(self, data: Any) -> None:
        print(f"  [{self.label}] <- {json.dumps(data)}")


async def run_demo() -> None:
    """Publish a few events and run one worker tick against the in-memory store."""
    from events.event_bus import EventBus
    from events.events import inventory_low_stock, order_created, order_status_changed
    from jobs.handlers import register_default_handlers
    from jobs.job_runner import JobRunner
    from messaging.channels import MessagingChannels
    from messaging.order_messages import OrderMessageSubscriber
    from notifications.dispatcher import NotificationDispatcher, RestaurantConnectionManager
    from notifications.notification_service import NotificationService
    from shared.data_store import DataStore

    store = DataStore()
    bus = EventBus()
    connections = RestaurantConnectionManager()
    connections.register("r1", _PrintingConnection("r1 dashboard"))
    NotificationService(bus, store, NotificationDispatcher(connections)).start()
    OrderMessageSubscriber(bus, store).start()

    print("\n=== Events ===")
    bus.emit(inventory_low_stock("r1", "i1", "Tomatoes", current_quantity=2, threshold=5, unit="kg"))
    bus.emit(order_created(
        "r1",
        "ord-7f3a9c21",
        channel="web",
        customer_name="Alice",
        customer_email="alice@example.com",
        customer_phone="+15550101",
    ))
    bus.emit(order_status_changed(
        "r1", "ord-7f3a9c21", previous_status="preparing", new_status="ready", customer_phone="+15550101",
    ))
    bus.emit(inventory_low_stock("r2", "i9", "Basil", current_quantity=1, threshold=3))
    await bus.drain()

    print("\n=== Worker tick ===")
    channels = MessagingChannels()
    runner = JobRunner(store)
    register_default_handlers(runner, channels)
    processed = await runner.run_once()
    print(f"  processed {processed} job(s), sent {channels.get_total_sent_count()} message(s)")
    for message in channels.get_all_sent_messages():
        print(f"  {message}")

    print("\n=== Stored notifications (r1) ===")
    for notification in await store.list_notifications("r1"):
        print(f"  [{notification.severity}] {notification.title}: {notification.message}")


def run_tests(args: list[str]) -> None:
    """Run the test suite."""
    cmd = [sys.executable, "-m", "pytest"] + args
    subprocess.run(cmd)


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Servio notification pipeline CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s worker
  %(prog)s serve --reload
  %(prog)s enqueue inventory_sync --details '{"itemId": "i1"}'
  %(prog)s demo
  %(prog)s test -v
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("worker", help="Run the background worker")

    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    enqueue_parser = subparsers.add_parser("enqueue", help="Queue a job")
    enqueue_parser.add_argument("job_type", help="Job type, e.g. menu_sync")
    enqueue_parser.add_argument("--restaurant", dest="restaurant_id", help="Restaurant the job belongs to")
    enqueue_parser.add_argument(
        "--channel",
        dest="channels",
        action="append",
        default=[],
        help="Target channel (repeatable)",
    )
    enqueue_parser.add_argument("--details", default="{}", help="Job details as a JSON object")

    subparsers.add_parser("demo", help="Run the in-memory walkthrough")

    test_parser = subparsers.add_parser("test", help="Run the test suite")
    test_parser.add_argument(
        "pytest_args",
        nargs="*",
        default=[],
        help="Arguments to pass to pytest",
    )

    args = parser.parse_args()

    if args.command == "worker":
        sys.exit(run_worker())
    elif args.command == "serve":
        run_server(args.host, args.port, args.reload)
    elif args.command == "enqueue":
        try:
            details = json.loads(args.details)
        except json.JSONDecodeError as e:
            print(f"Invalid --details JSON: {e}")
            sys.exit(1)
        if not isinstance(details, dict):
            print("--details must be a JSON object")
            sys.exit(1)
        asyncio.run(enqueue_job(args.job_type, args.restaurant_id, args.channels, details))
    elif args.command == "demo":
        from shared.logging_setup import configure_logging
        configure_logging("INFO")
        asyncio.run(run_demo())
    elif args.command == "test":
        run_tests(args.pytest_args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
