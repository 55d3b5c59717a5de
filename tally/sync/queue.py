"""
RetryQueue: durable FIFO for sends deferred while offline.

Design:
- One queue per running process, constructed explicitly and passed to
  the senders and the connectivity monitor
- The whole list lives under a single storage key; every mutation
  rewrites it in full
- drain() looks at the head only. Success removes it; failure bumps
  its retry count and leaves it in place until MAX_RETRIES is reached,
  then it is discarded. Nothing behind the head is attempted first
- After each attempt, if work remains, another drain is scheduled
  retry_delay seconds later as a background task
- The draining flag guards against overlapping drains. It is a plain
  boolean because everything runs on one event loop

Discarded operations are gone: there is no dead-letter store. The drop
is logged and emitted as queue:dropped so a subscriber could keep them.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable

from tally.core.bus import EventBus
from tally.core.errors import StorageError
from tally.core.events import Event, EventType
from tally.core.types import Channel
from tally.delivery.client import DeliveryClient
from tally.store.base import StorageProvider
from tally.sync.operation import QueuedOperation

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_DELAY = 1.0  # seconds between drain attempts
QUEUE_KEY = "sync_queue"
DRAIN_PATH = "/api/notifications"


class RetryQueue:
    """
    Usage:
        queue = RetryQueue(client, storage=storage, is_online=lambda: monitor.is_online)
        await queue.initialize()

        op_id = await queue.enqueue(Channel.SMS, {"to": ..., "message": ...})
        await queue.drain()
        ...
        await queue.close()
    """

    def __init__(
        self,
        client: DeliveryClient,
        storage: StorageProvider | None = None,
        is_online: Callable[[], bool] = lambda: True,
        bus: EventBus | None = None,
        storage_key: str = QUEUE_KEY,
        drain_path: str = DRAIN_PATH,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY,
    ) -> None:
        self._client = client
        self._storage = storage
        self._is_online = is_online
        self._bus = bus
        self._storage_key = storage_key
        self._drain_path = drain_path
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._queue: list[QueuedOperation] = []
        self._draining = False
        self._closed = False
        self._scheduled: set[asyncio.Task] = set()

    # ── Lifecycle ────────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Load the persisted queue. A missing or corrupt slot starts empty."""
        self._closed = False
        if self._storage is None:
            return
        try:
            raw = await self._storage.get(self._storage_key)
        except StorageError as e:
            logger.error(f"Failed to load sync queue: {e}")
            return
        if not raw:
            return
        try:
            self._queue = [QueuedOperation.from_dict(d) for d in json.loads(raw)]
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Failed to load sync queue: {e}")
            self._queue = []
            return
        logger.info(f"Loaded {len(self._queue)} queued operation(s)")

    async def close(self) -> None:
        """
        Stop draining and cancel scheduled drains. A drain already in flight
        finishes its one attempt but schedules nothing. The persisted queue
        is left as is; initialize() reopens.
        """
        self._closed = True
        tasks = list(self._scheduled)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._scheduled.clear()

    # ── Public API ───────────────────────────────────────────────────────────

    @property
    def size(self) -> int:
        return len(self._queue)

    @property
    def draining(self) -> bool:
        return self._draining

    def snapshot(self) -> list[QueuedOperation]:
        return list(self._queue)

    async def enqueue(self, channel: Channel | str, payload: dict[str, Any]) -> str:
        """Append an operation to the tail and persist. Returns its id."""
        operation = QueuedOperation(channel=Channel(channel), payload=dict(payload))
        self._queue.append(operation)
        await self._persist()
        logger.info(f"Queued {operation.channel.value} operation {operation.id}")
        await self._emit(EventType.QUEUE_ENQUEUED, operation)
        return operation.id

    async def clear(self) -> None:
        """Drop everything. Administrative escape hatch."""
        dropped = len(self._queue)
        self._queue = []
        await self._persist()
        logger.warning(f"Sync queue cleared ({dropped} operation(s) discarded)")
        if self._bus:
            await self._bus.emit(
                Event(type=EventType.QUEUE_CLEARED, source="queue", data={"dropped": dropped})
            )

    async def drain(self) -> None:
        """Attempt the head operation once. See module docstring."""
        if self._closed or self._draining or not self._queue or not self._is_online():
            return

        self._draining = True
        operation = self._queue[0]
        try:
            try:
                await self._deliver(operation)
            except Exception as e:
                await self._record_failure(operation, e)
            else:
                self._remove(operation)
                await self._persist()
                logger.info(f"Sent queued {operation.channel.value} operation {operation.id}")
                await self._emit(EventType.QUEUE_SENT, operation)
        finally:
            self._draining = False

        if self._queue:
            self._schedule_drain()

    async def wait_idle(self) -> None:
        """Wait until no drain is scheduled (the queue is empty or offline)."""
        while self._scheduled:
            await asyncio.gather(*list(self._scheduled), return_exceptions=True)

    # ── Internals ────────────────────────────────────────────────────────────

    async def _deliver(self, operation: QueuedOperation) -> None:
        response = await self._client.post(self._drain_path, operation.payload)
        if response.is_error:
            raise RuntimeError(f"Failed to send notification (status {response.status_code})")

    async def _record_failure(self, operation: QueuedOperation, error: Exception) -> None:
        operation.retry_count += 1
        if operation.retry_count >= self._max_retries:
            self._remove(operation)
            logger.warning(
                f"Dropping {operation.channel.value} operation {operation.id} "
                f"after {operation.retry_count} failed attempts: {error}"
            )
            await self._persist()
            await self._emit(EventType.QUEUE_DROPPED, operation, error=str(error))
            return

        logger.warning(
            f"Queued operation {operation.id} failed "
            f"(attempt {operation.retry_count}/{self._max_retries}): {error}"
        )
        await self._persist()
        await self._emit(EventType.QUEUE_RETRY, operation, error=str(error))

    def _remove(self, operation: QueuedOperation) -> None:
        # The head is only ever removed by the drain that attempted it,
        # but clear() may have emptied the list in the meantime.
        if self._queue and self._queue[0] is operation:
            self._queue.pop(0)

    def _schedule_drain(self) -> None:
        # At most one deferred drain waits at a time.
        if self._closed:
            return
        current = asyncio.current_task()
        if any(t is not current and not t.done() for t in self._scheduled):
            return
        task = asyncio.create_task(self._drain_later(), name="tally-drain")
        self._scheduled.add(task)
        task.add_done_callback(self._scheduled.discard)

    async def _drain_later(self) -> None:
        await asyncio.sleep(self._retry_delay)
        await self.drain()

    async def _persist(self) -> None:
        if self._storage is None:
            return
        data = json.dumps([op.to_dict() for op in self._queue]).encode("utf-8")
        try:
            await self._storage.set(self._storage_key, data)
        except StorageError as e:
            logger.error(f"Failed to save sync queue: {e}")

    async def _emit(self, event_type: str, operation: QueuedOperation, **extra: Any) -> None:
        if self._bus is None:
            return
        data = {
            "id": operation.id,
            "channel": operation.channel.value,
            "retries": operation.retry_count,
            "size": len(self._queue),
            **extra,
        }
        await self._bus.emit(Event(type=event_type, source="queue", data=data))
