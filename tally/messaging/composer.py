"""
Message composer: the parent-facing wording for each attendance status.

Composition is pure: identical inputs always give byte-identical output,
so an operation rebuilt for a retry carries exactly the text the parent
would have received the first time.
"""

from __future__ import annotations

from dataclasses import dataclass

from tally.core.types import AttendanceStatus, Student
from tally.messaging.settings import SchoolInfo


@dataclass(frozen=True, slots=True)
class EmailMessage:
    """Subject plus plain-text and HTML bodies for one email."""

    subject: str
    text: str
    html: str


def _reason_block(note: str | None) -> str:
    return f"Reason: {note}\n\n" if note else ""


def _phone_line(school: SchoolInfo) -> str:
    return f"School Phone: {school.phone}\n" if school.phone else ""


def _subject(student: Student, status: AttendanceStatus, school: SchoolInfo) -> str:
    if status is AttendanceStatus.ABSENT:
        return f"{school.name} - Student Absence Notification: {student.name}"
    if status is AttendanceStatus.LATE:
        return f"{school.name} - Student Late Arrival: {student.name}"
    return f"{school.name} - Excused Absence Confirmation: {student.name}"


def _email_body(
    student: Student, status: AttendanceStatus, note: str | None, school: SchoolInfo
) -> str:
    greeting = f"Dear {student.parent_name},\n\n"
    closing = f"Sincerely,\n{school.name}"
    phone = _phone_line(school)

    if status is AttendanceStatus.ABSENT:
        return (
            f"{greeting}"
            f"This is to inform you that your child, {student.name}, in {student.grade}, "
            "was marked absent today.\n\n"
            f"{_reason_block(note)}"
            "If this absence was unplanned, kindly contact the school administration "
            "for clarification.\n\n"
            f"{phone}Thank you for your cooperation.\n\n"
            f"{closing}"
        )
    if status is AttendanceStatus.LATE:
        # The late template never carries a reason.
        return (
            f"{greeting}"
            f"Your child, {student.name}, in {student.grade}, arrived late to school today.\n\n"
            "Please ensure your child arrives on time to support their learning "
            "and attendance record.\n\n"
            f"{phone}Thank you for your attention.\n\n"
            f"{closing}"
        )
    return (
        f"{greeting}"
        f"This is to confirm that your child, {student.name}, in {student.grade}, "
        "has been marked as excused absent today due to the reason provided.\n\n"
        f"{_reason_block(note)}"
        "If this information is incorrect, kindly contact the school office immediately.\n\n"
        f"{phone}Thank you for keeping us informed.\n\n"
        f"{closing}"
    )


def compose_email(
    student: Student,
    status: AttendanceStatus | str,
    note: str | None,
    school: SchoolInfo,
) -> EmailMessage:
    """Build the subject and bodies for an attendance email."""
    status = AttendanceStatus(status)
    text = _email_body(student, status, note, school)
    return EmailMessage(
        subject=_subject(student, status, school),
        text=text,
        html=text.replace("\n", "<br>"),
    )


def compose_sms(
    student: Student,
    status: AttendanceStatus | str,
    note: str | None,
    school: SchoolInfo,
) -> str:
    """Build the single-paragraph SMS text for an attendance mark."""
    status = AttendanceStatus(status)
    lead = f"Dear {student.parent_name}, your child {student.name} ({student.grade})"
    reason = f" Reason: {note}." if note else ""
    phone = f" School: {school.phone}." if school.phone else ""
    sign_off = f" Sincerely, {school.name}"

    if status is AttendanceStatus.ABSENT:
        return (
            f"{lead} was marked absent today.{reason} "
            f"Please contact school if unplanned.{phone}{sign_off}"
        )
    if status is AttendanceStatus.LATE:
        return f"{lead} arrived late today. Please ensure punctuality.{phone}{sign_off}"
    return f"{lead} has been marked as excused absent today.{reason}{phone}{sign_off}"
