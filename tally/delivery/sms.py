"""
SmsSender: attendance SMS via the delivery service's /api/send-sms.

Parent phones are normalized to +251XXXXXXXXX before anything else; a
number that cannot be normalized is never sent and never queued.
"""

from __future__ import annotations

from typing import Any

from tally.core.errors import InvalidPhone, InvalidRecipient
from tally.core.types import AttendanceStatus, Channel, Student
from tally.delivery.base import ChannelSender
from tally.messaging.composer import compose_sms
from tally.messaging.contact import normalize_phone
from tally.messaging.settings import SchoolInfo


class SmsSender(ChannelSender):
    channel = Channel.SMS
    label = "SMS"
    noun = "SMS"
    setup_message = (
        "Real SMS notifications require SMS provider configuration. "
        "Click to view setup guide."
    )
    provider_hint = "Please check your SMS provider configuration."

    def resolve_recipient(self, student: Student) -> str:
        if not (student.parent_phone or "").strip():
            raise InvalidRecipient("No phone number provided", value="")
        return normalize_phone(student.parent_phone.strip())

    def rejection(self, student: Student, error: InvalidRecipient) -> tuple[str, str]:
        title = "Invalid Phone" if isinstance(error, InvalidPhone) else "Missing Phone"
        return title, f"Cannot send SMS to {student.parent_name}: {error.message}"

    def compose(
        self,
        student: Student,
        status: AttendanceStatus,
        note: str | None,
        school: SchoolInfo,
        recipient: str,
    ) -> dict[str, Any]:
        return {"to": recipient, "message": compose_sms(student, status, note, school)}

    def confirmation(
        self,
        body: dict[str, Any],
        student: Student,
        status: AttendanceStatus,
        recipient: str,
    ) -> tuple[str, str, str]:
        summary = f"to {student.parent_name} at {recipient} for {student.name}'s {status.value} status"
        if body.get("demo"):
            return "SMS Sent (Demo)", f"Demo SMS sent {summary} ({body.get('message', '')})", recipient
        return "SMS Sent", f"Real SMS sent {summary}", recipient
