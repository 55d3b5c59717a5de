"""
Tally shared types: the data objects that cross module boundaries.

All types are dataclasses. Frozen where immutability makes sense.
Students are owned by the surrounding application; Tally only reads them.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

from tally.core.errors import ErrorKind


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Enums
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class Channel(str, Enum):
    """A notification delivery mechanism."""

    EMAIL = "email"
    SMS = "sms"


class AttendanceStatus(str, Enum):
    """Attendance marks that produce a parent notification."""

    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"


ALL_CHANNELS: tuple[Channel, ...] = (Channel.EMAIL, Channel.SMS)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Inputs
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass(frozen=True, slots=True)
class Student:
    """A student record as supplied by the data-storage collaborator."""

    id: str
    name: str
    grade: str
    parent_name: str
    parent_email: str = ""
    parent_phone: str = ""
    student_id: str = ""
    section: str = ""

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Student:
        """Build from a stored record, ignoring keys Tally does not use."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: ("" if v is None else str(v)) for k, v in d.items() if k in known})


@dataclass(frozen=True, slots=True)
class BulkItem:
    """
    One (student, status, note) decision handed over by the UI.

    The status is checked here, so a batch holding a mark that does not
    notify (e.g. "present") fails before anything in it is sent.
    """

    student: Student
    status: AttendanceStatus
    note: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", AttendanceStatus(self.status))


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Outcomes
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass(slots=True)
class DeliveryOutcome:
    """Result of a single send attempt on one channel. Never persisted."""

    channel: Channel
    success: bool
    recipient_display: str
    error_kind: ErrorKind | None = None
    message: str = ""


@dataclass(slots=True)
class ChannelTally:
    """Success/failure counters for one channel within a batch."""

    success: int = 0
    failed: int = 0

    def record(self, ok: bool) -> None:
        if ok:
            self.success += 1
        else:
            self.failed += 1

    def to_dict(self) -> dict[str, int]:
        return {"success": self.success, "failed": self.failed}


@dataclass(slots=True)
class DispatchResult:
    """Per-channel booleans for a single student."""

    email: bool = False
    sms: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {"email": self.email, "sms": self.sms}


@dataclass(slots=True)
class AggregateResult:
    """Per-channel counts for a batch. Computed fresh per dispatch call."""

    email: ChannelTally = field(default_factory=ChannelTally)
    sms: ChannelTally = field(default_factory=ChannelTally)

    @property
    def total_success(self) -> int:
        return self.email.success + self.sms.success

    @property
    def total_failed(self) -> int:
        return self.email.failed + self.sms.failed

    def for_channel(self, channel: Channel) -> ChannelTally:
        return self.email if channel is Channel.EMAIL else self.sms

    def summary(self) -> tuple[str, str]:
        """Title and message for the end-of-batch toast."""
        if self.total_success + self.total_failed == 0:
            return "No Notifications", "No absent, late, or excused students to notify"
        if self.email.failed > 0 and self.sms.success > 0:
            return (
                "SMS Sent Successfully",
                f"{self.sms.success} SMS notifications sent successfully. "
                "Email setup required for email notifications.",
            )
        counts = (
            f"Successfully sent {self.total_success} notifications "
            f"({self.email.success} emails, {self.sms.success} SMS)"
        )
        if self.total_failed > 0:
            return "Notifications Sent", f"{counts}. {self.total_failed} failed to send."
        return "Notifications Sent", counts

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {"email": self.email.to_dict(), "sms": self.sms.to_dict()}
