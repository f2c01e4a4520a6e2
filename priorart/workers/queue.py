"""
Job queue transports.

Two interchangeable transports carry job messages ({id, type, filing_id}):

- RedisQueue: durable Redis list. A received message is moved atomically to
  a processing list and removed only when acknowledged, so a worker crash
  leaves it there for recovery (at-least-once).
- MemoryQueue: in-process queue.Queue. Not durable; messages are lost with
  the process (at-most-once). Used when Redis is unreachable at startup.

connect_queue() probes Redis once and picks the transport.
"""

import json
import logging
import queue as stdlib_queue
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import redis

from priorart import config

logger = logging.getLogger(__name__)


@dataclass
class Delivery:
    """A received message plus the raw payload needed to acknowledge it."""
    message: Dict[str, Any]
    raw: str


class QueueTransport(ABC):
    """Abstract job queue transport."""

    durable: bool = False

    @abstractmethod
    def publish(self, message: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def receive(self, timeout: int = 5) -> Optional[Delivery]:
        """Wait up to timeout seconds for the next message."""
        pass

    @abstractmethod
    def ack(self, delivery: Delivery) -> None:
        pass


class RedisQueue(QueueTransport):

    durable = True

    def __init__(self, client: redis.Redis, name: str = config.QUEUE_NAME):
        self.client = client
        self.name = name
        self.processing_name = f"{name}:processing"

    def publish(self, message: Dict[str, Any]) -> None:
        self.client.lpush(self.name, json.dumps(message))

    def receive(self, timeout: int = 5) -> Optional[Delivery]:
        raw = self.client.blmove(self.name, self.processing_name, timeout, src="RIGHT", dest="LEFT")
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            logger.error(f"Discarding malformed queue message: {raw[:200]}")
            self.client.lrem(self.processing_name, 1, raw)
            return None
        return Delivery(message=message, raw=raw)

    def ack(self, delivery: Delivery) -> None:
        self.client.lrem(self.processing_name, 1, delivery.raw)

    def recover_in_flight(self) -> int:
        """Move unacknowledged messages back onto the queue. Returns how many moved."""
        moved = 0
        while self.client.lmove(self.processing_name, self.name, src="RIGHT", dest="RIGHT") is not None:
            moved += 1
        if moved:
            logger.warning(f"Recovered {moved} unacknowledged messages into {self.name}")
        return moved


class MemoryQueue(QueueTransport):

    durable = False

    def __init__(self):
        self._queue = stdlib_queue.Queue()

    def publish(self, message: Dict[str, Any]) -> None:
        self._queue.put(json.dumps(message))

    def receive(self, timeout: int = 5) -> Optional[Delivery]:
        try:
            raw = self._queue.get(timeout=timeout)
        except stdlib_queue.Empty:
            return None
        return Delivery(message=json.loads(raw), raw=raw)

    def ack(self, delivery: Delivery) -> None:
        self._queue.task_done()

    def __len__(self) -> int:
        return self._queue.qsize()


def connect_queue(url: str = config.REDIS_URL, name: str = config.QUEUE_NAME) -> QueueTransport:
    """
    Connect to the Redis queue, falling back to an in-memory queue.

    The fallback is chosen once, at startup, when Redis does not answer PING.
    """
    try:
        client = redis.Redis.from_url(url, socket_connect_timeout=2)
        client.ping()
    except redis.RedisError as e:
        logger.warning(
            f"Redis unreachable at {url} ({e}); using in-memory queue. "
            "Jobs will not survive a restart."
        )
        return MemoryQueue()

    logger.info(f"Connected to Redis queue {name}")
    return RedisQueue(client, name=name)


_queue_instance: QueueTransport = None


def get_queue() -> QueueTransport:
    """Process-wide queue transport (singleton)."""
    global _queue_instance
    if _queue_instance is None:
        _queue_instance = connect_queue()
    return _queue_instance


def reset_queue() -> None:
    """Reset the queue singleton (for testing)."""
    global _queue_instance
    _queue_instance = None
