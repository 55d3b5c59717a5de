"""
EmailSender: attendance emails via the delivery service's /api/send-email.

The service may run in testing mode, where every message is redirected
to a sandbox inbox. Its reply then names both the actual and the
original recipient, and the toast says so.
"""

from __future__ import annotations

from typing import Any

from tally.core.errors import InvalidRecipient
from tally.core.types import AttendanceStatus, Channel, Student
from tally.delivery.base import ChannelSender
from tally.messaging.composer import compose_email
from tally.messaging.contact import is_valid_email
from tally.messaging.settings import SchoolInfo


class EmailSender(ChannelSender):
    channel = Channel.EMAIL
    label = "Email"
    noun = "notification"
    setup_message = (
        "Real email notifications require Resend API key configuration. "
        "Click to view setup guide."
    )
    provider_hint = "Please check your Resend configuration."

    def resolve_recipient(self, student: Student) -> str:
        address = (student.parent_email or "").strip()
        if not is_valid_email(address):
            raise InvalidRecipient(
                f"Invalid email address ({student.parent_email})",
                value=student.parent_email,
            )
        return address

    def rejection(self, student: Student, error: InvalidRecipient) -> tuple[str, str]:
        return (
            "Invalid Email",
            f"Cannot send notification to {student.parent_name}: {error.message}",
        )

    def compose(
        self,
        student: Student,
        status: AttendanceStatus,
        note: str | None,
        school: SchoolInfo,
        recipient: str,
    ) -> dict[str, Any]:
        message = compose_email(student, status, note, school)
        return {
            "to": recipient,
            "subject": message.subject,
            "text": message.text,
            "html": message.html,
        }

    def confirmation(
        self,
        body: dict[str, Any],
        student: Student,
        status: AttendanceStatus,
        recipient: str,
    ) -> tuple[str, str, str]:
        if body.get("testing"):
            actual = body.get("actualRecipient") or recipient
            original = body.get("originalRecipient") or recipient
            return (
                "Email Sent (Testing)",
                f"Testing mode: Email for {student.parent_name} redirected to "
                f"{actual} (originally {original})",
                actual,
            )
        return (
            "Email Sent",
            f"Real notification sent to {student.parent_name} at {recipient} "
            f"for {student.name}'s {status.value} status",
            recipient,
        )
