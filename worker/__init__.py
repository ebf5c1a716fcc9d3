from worker.heartbeat import Heartbeat
from worker.main import Worker

__all__ = ["Heartbeat", "Worker"]
