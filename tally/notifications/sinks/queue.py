"""
QueueSink: hands toasts to the UI layer through an asyncio.Queue.

The UI consumes the queue at its own pace and renders each toast for
toast.duration milliseconds.
"""

from __future__ import annotations

import asyncio

from tally.notifications.base import Toast, ToastSink


class QueueSink(ToastSink):
    """
    Usage:
        toasts: asyncio.Queue[Toast] = asyncio.Queue()
        notifier.register(QueueSink(toasts))
    """

    def __init__(self, queue: "asyncio.Queue[Toast] | None" = None) -> None:
        self.queue: asyncio.Queue[Toast] = queue if queue is not None else asyncio.Queue()
        self._active = True

    @property
    def name(self) -> str:
        return "queue"

    @property
    def is_active(self) -> bool:
        return self._active

    def set_active(self, active: bool) -> None:
        self._active = active

    async def deliver(self, toast: Toast) -> bool:
        await self.queue.put(toast)
        return True
