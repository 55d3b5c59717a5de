"""
Tally Event System: types and constants.

Every delivery attempt, queue mutation and connectivity change produces an
event. Events flow through the middleware chain, then to subscribers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
import time
import uuid


class EventType:
    """
    Event type constants.

    Hierarchical naming: "category:action"
    Supports wildcard matching: "queue:*" matches "queue:dropped"
    """

    # System lifecycle
    SYSTEM_START = "system:start"
    SYSTEM_STOP = "system:stop"

    # Channel senders
    DELIVERY_SENT = "delivery:sent"
    DELIVERY_FAILED = "delivery:failed"
    DELIVERY_QUEUED = "delivery:queued"

    # Retry queue
    QUEUE_ENQUEUED = "queue:enqueued"
    QUEUE_SENT = "queue:sent"
    QUEUE_RETRY = "queue:retry"
    QUEUE_DROPPED = "queue:dropped"
    QUEUE_CLEARED = "queue:cleared"

    # Connectivity
    CONNECTIVITY_ONLINE = "connectivity:online"
    CONNECTIVITY_OFFLINE = "connectivity:offline"

    # Wildcard
    ALL = "*"


@dataclass(slots=True)
class Event:
    """
    A single event in the Tally system.

    Typed (hierarchical string), timestamped, and carries an
    event-specific data dict.
    """

    type: str
    data: dict[str, Any] = field(default_factory=dict)
    source: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])
    timestamp: float = field(default_factory=time.time)
