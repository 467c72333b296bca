"""
Delivery of automation execution ids from the API to workers.

An id handed out by `dequeue` stays in flight until the worker calls `ack`.
If a worker dies mid-run the id is still held in flight, and `recover` hands
it back to the front of the queue the next time a worker starts.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

import redis
from redis import exceptions as redis_exceptions

logger = logging.getLogger(__name__)


class JobQueue(Protocol):
    def enqueue(self, execution_id: str) -> None:
        ...

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[str]:
        """Claim the oldest id. `timeout=None` with `block=True` waits forever."""
        ...

    def ack(self, execution_id: str) -> None:
        ...

    def recover(self) -> List[str]:
        """Return unacknowledged ids to the queue head and list them."""
        ...


@dataclass
class InMemoryJobQueue:
    """Thread-safe FIFO for tests and single-process runs."""

    items: list[str] = field(default_factory=list)
    in_flight: list[str] = field(default_factory=list)

    def __post_init__(self):
        self._ready = threading.Condition()

    def enqueue(self, execution_id: str) -> None:
        with self._ready:
            self.items.append(execution_id)
            self._ready.notify()

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[str]:
        with self._ready:
            if block:
                deadline = None if timeout is None else time.monotonic() + timeout
                while not self.items:
                    remaining = None if deadline is None else deadline - time.monotonic()
                    if remaining is not None and remaining <= 0:
                        break
                    self._ready.wait(remaining)
            if not self.items:
                return None
            execution_id = self.items.pop(0)
            self.in_flight.append(execution_id)
            return execution_id

    def ack(self, execution_id: str) -> None:
        with self._ready:
            if execution_id in self.in_flight:
                self.in_flight.remove(execution_id)

    def recover(self) -> List[str]:
        with self._ready:
            recovered, self.in_flight = self.in_flight, []
            self.items[:0] = recovered
            if recovered:
                self._ready.notify_all()
            return recovered


@dataclass
class RedisJobQueue:
    """
    Redis list queue with a processing list for claimed ids.

    `dequeue` moves an id from `queue_key` onto `processing_key` atomically
    (LMOVE/BLMOVE), so a crash between claiming and finishing leaves the id
    recoverable instead of lost.
    """

    url: str
    queue_key: str = "pinnlo:automation"
    processing_key: Optional[str] = None

    def __post_init__(self):
        if self.processing_key is None:
            self.processing_key = f"{self.queue_key}:processing"
        self.client = redis.Redis.from_url(self.url)

    def _reconnect(self) -> None:
        # Managed Redis drops idle connections.
        logger.warning("Redis connection lost, reconnecting to %s", self.queue_key)
        self.client = redis.Redis.from_url(self.url)

    def enqueue(self, execution_id: str) -> None:
        self.client.rpush(self.queue_key, execution_id)

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[str]:
        try:
            if block:
                execution_id = self.client.blmove(
                    self.queue_key, self.processing_key, timeout or 0, "LEFT", "RIGHT"
                )
            else:
                execution_id = self.client.lmove(
                    self.queue_key, self.processing_key, "LEFT", "RIGHT"
                )
        except redis_exceptions.ConnectionError:
            self._reconnect()
            return None
        if execution_id is None:
            return None
        return execution_id.decode("utf-8")

    def ack(self, execution_id: str) -> None:
        self.client.lrem(self.processing_key, 1, execution_id)

    def recover(self) -> List[str]:
        recovered = []
        while True:
            # Newest claim first onto the head keeps the original order.
            execution_id = self.client.lmove(
                self.processing_key, self.queue_key, "RIGHT", "LEFT"
            )
            if execution_id is None:
                break
            recovered.append(execution_id.decode("utf-8"))
        recovered.reverse()
        if recovered:
            logger.info("Recovered %d in-flight executions", len(recovered))
        return recovered
