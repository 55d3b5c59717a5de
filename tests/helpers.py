"""Test doubles shared across test modules."""

import json

import httpx

from tally.delivery.client import DeliveryClient
from tally.messaging.settings import SchoolInfo, StaticSettings
from tally.notifications.sinks import QueueSink
from tally.sync.connectivity import ConnectivityMonitor
from tally.sync.queue import RetryQueue


class FakeService:
    """
    Scriptable stand-in for the delivery service.

    Replies are taken from `replies` in order; the last one repeats.
    Each reply is a (status, body) pair, where body is a dict (sent as
    JSON) or a str (sent verbatim), or an Exception to raise instead.
    """

    def __init__(self, *replies) -> None:
        self.replies = list(replies) or [(200, {"success": True})]
        self.requests: list[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def payloads(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.replies[min(len(self.requests), len(self.replies)) - 1]
        if isinstance(reply, Exception):
            raise reply
        status, body = reply
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def drain_toasts(sink: QueueSink) -> list:
    """Everything shown so far, oldest first."""
    shown = []
    while not sink.queue.empty():
        shown.append(sink.queue.get_nowait())
    return shown


def build_sender(
    sender_cls,
    service: FakeService,
    notifier,
    *,
    online: bool = True,
    bus=None,
    school=None,
):
    """Wire a channel sender to a fake service with a memory-only queue."""
    client = DeliveryClient(transport=service.transport)
    monitor = ConnectivityMonitor(online=online)
    queue = RetryQueue(client, is_online=lambda: monitor.is_online, retry_delay=60)
    settings = StaticSettings(school or SchoolInfo(name="Bole Academy", phone="+251111223344"))
    return sender_cls(
        client=client,
        settings=settings,
        queue=queue,
        monitor=monitor,
        notifier=notifier,
        path=f"/api/send-{sender_cls.channel.value}",
        bus=bus,
    )
