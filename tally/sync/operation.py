"""
QueuedOperation: one deferred send waiting in the retry queue.

Serialized with the same keys the browser build of the tracker wrote to
local storage (id/type/data/timestamp/retries), so a queue saved there
loads here unchanged.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from tally.core.types import Channel


def new_operation_id() -> str:
    """Millisecond timestamp plus a random suffix, e.g. '1729150000000-3f9a0c1b2'."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


@dataclass
class QueuedOperation:
    """A composed email or SMS that could not be sent when requested."""

    channel: Channel
    payload: dict[str, Any]

    id: str = field(default_factory=new_operation_id)
    enqueued_at: int = field(default_factory=lambda: int(time.time() * 1000))  # ms
    retry_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.channel.value,
            "data": self.payload,
            "timestamp": self.enqueued_at,
            "retries": self.retry_count,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> QueuedOperation:
        return cls(
            id=str(d["id"]),
            channel=Channel(d["type"]),
            payload=dict(d.get("data") or {}),
            enqueued_at=int(d.get("timestamp", 0)),
            retry_count=int(d.get("retries", 0)),
        )
