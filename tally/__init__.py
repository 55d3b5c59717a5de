"""
Tally: offline-tolerant attendance notifications for parents.

Public API:
    from tally import Kernel, TallyConfig, Student, AttendanceStatus
"""

__version__ = "0.1.0"

# Core
from tally.core.kernel import Kernel
from tally.core.config import TallyConfig
from tally.core.events import Event, EventType
from tally.core.types import (
    AggregateResult,
    AttendanceStatus,
    BulkItem,
    Channel,
    DispatchResult,
    Student,
)

# Messaging
from tally.messaging.contact import normalize_phone

# Notifications
from tally.notifications.base import Toast, ToastLevel

__all__ = [
    # Core
    "Kernel",
    "TallyConfig",
    "Event",
    "EventType",
    "AggregateResult",
    "AttendanceStatus",
    "BulkItem",
    "Channel",
    "DispatchResult",
    "Student",
    # Messaging
    "normalize_phone",
    # Notifications
    "Toast",
    "ToastLevel",
]
