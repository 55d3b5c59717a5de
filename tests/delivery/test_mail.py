"""Tests for the email sender."""

import dataclasses

import httpx
import pytest
from tally.core.errors import ErrorKind
from tally.core.events import Event
from tally.delivery.mail import EmailSender

from tests.helpers import FakeService, build_sender, drain_toasts


@pytest.mark.asyncio
async def test_send_success(student, notifier, toasts, bus):
    service = FakeService((200, {"success": True, "id": "re_123"}))
    sender = build_sender(EmailSender, service, notifier, bus=bus)
    events = []

    async def record(event: Event):
        events.append((event.type, event.data["recipient"]))

    bus.on("delivery:*", record)

    ok = await sender.send(student, "absent", "Fever")

    assert ok is True
    assert service.requests[0].url.path == "/api/send-email"
    payload = service.payloads()[0]
    assert set(payload) == {"to", "subject", "text", "html"}
    assert payload["to"] == "kebede@example.com"
    assert payload["subject"] == "Bole Academy - Student Absence Notification: Abebe Kebede"
    assert "Reason: Fever" in payload["text"]

    [toast] = drain_toasts(toasts)
    assert toast.title == "Email Sent"
    assert toast.message == (
        "Real notification sent to Kebede Alemu at kebede@example.com "
        "for Abebe Kebede's absent status"
    )
    assert events == [("delivery:sent", "kebede@example.com")]


@pytest.mark.asyncio
async def test_testing_mode_reports_redirect(student, notifier, toasts):
    service = FakeService(
        (
            200,
            {
                "success": True,
                "testing": True,
                "actualRecipient": "sandbox@school.et",
                "originalRecipient": "kebede@example.com",
            },
        )
    )
    sender = build_sender(EmailSender, service, notifier)

    outcome = await sender.deliver(student, "late")

    assert outcome.success is True
    assert outcome.recipient_display == "sandbox@school.et"
    [toast] = drain_toasts(toasts)
    assert toast.title == "Email Sent (Testing)"
    assert toast.message == (
        "Testing mode: Email for Kebede Alemu redirected to sandbox@school.et "
        "(originally kebede@example.com)"
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("address", ["", "not-an-email", "kebede@example"])
async def test_invalid_address_never_sent(student, notifier, toasts, address):
    service = FakeService()
    sender = build_sender(EmailSender, service, notifier)
    student = dataclasses.replace(student, parent_email=address)

    outcome = await sender.deliver(student, "absent")

    assert outcome.success is False
    assert outcome.error_kind is ErrorKind.INVALID_RECIPIENT
    assert service.calls == 0
    assert sender._queue.size == 0
    [toast] = drain_toasts(toasts)
    assert toast.title == "Invalid Email"
    assert toast.message == (
        f"Cannot send notification to Kebede Alemu: Invalid email address ({address})"
    )


@pytest.mark.asyncio
async def test_offline_send_is_queued(student, notifier, toasts):
    service = FakeService()
    sender = build_sender(EmailSender, service, notifier, online=False)

    outcome = await sender.deliver(student, "excused", "Wedding")

    assert outcome.success is False
    assert outcome.error_kind is ErrorKind.OFFLINE
    assert service.calls == 0

    [op] = sender._queue.snapshot()
    assert op.payload["to"] == "kebede@example.com"
    assert op.payload["studentName"] == "Abebe Kebede"
    assert op.payload["parentName"] == "Kebede Alemu"
    assert "Reason: Wedding" in op.payload["text"]

    [toast] = drain_toasts(toasts)
    assert toast.title == "Email Queued"
    assert toast.message == "Email for Kebede Alemu will be sent when you're back online"


@pytest.mark.asyncio
async def test_setup_required_opens_guide_once(student, notifier, toasts):
    service = FakeService(
        (400, {"success": False, "error": "SETUP_REQUIRED", "message": "Resend API key missing"})
    )
    sender = build_sender(EmailSender, service, notifier)
    opened = []
    sender.set_setup_required_callback(lambda: opened.append(True))

    first = await sender.deliver(student, "absent")
    second = await sender.deliver(student, "absent")

    assert first.error_kind is ErrorKind.SETUP_REQUIRED
    assert second.error_kind is ErrorKind.SETUP_REQUIRED
    assert opened == [True]
    assert sender._queue.size == 0

    shown = drain_toasts(toasts)
    assert [t.title for t in shown] == ["Email Setup Required"] * 2
    assert shown[0].duration == 8000
    assert shown[0].message.startswith("Real email notifications require Resend API key")

    sender.reset_setup_prompt()
    await sender.deliver(student, "absent")
    assert opened == [True, True]


@pytest.mark.asyncio
async def test_async_setup_callback_is_awaited(student, notifier):
    service = FakeService((400, {"success": False, "error": "SETUP_REQUIRED"}))
    sender = build_sender(EmailSender, service, notifier)
    opened = []

    async def open_guide():
        opened.append("guide")

    sender.set_setup_required_callback(open_guide)
    await sender.send(student, "absent")

    assert opened == ["guide"]


@pytest.mark.asyncio
async def test_provider_error_shows_solution(student, notifier, toasts):
    service = FakeService(
        (
            403,
            {
                "success": False,
                "error": "DOMAIN_NOT_VERIFIED",
                "message": "Domain is not verified",
                "instructions": {"solution": "Verify bole.et in the Resend dashboard"},
            },
        )
    )
    sender = build_sender(EmailSender, service, notifier)

    outcome = await sender.deliver(student, "absent")

    assert outcome.error_kind is ErrorKind.PROVIDER_ERROR
    [toast] = drain_toasts(toasts)
    assert toast.title == "Email Configuration Error"
    assert toast.message == "Domain is not verified. Verify bole.et in the Resend dashboard"
    assert toast.duration == 8000


@pytest.mark.asyncio
async def test_provider_error_without_solution_uses_hint(student, notifier, toasts):
    service = FakeService(
        (422, {"success": False, "message": "Invalid sender", "instructions": {}})
    )
    sender = build_sender(EmailSender, service, notifier)

    await sender.deliver(student, "absent")

    [toast] = drain_toasts(toasts)
    assert toast.message == "Invalid sender. Please check your Resend configuration."


@pytest.mark.asyncio
async def test_html_error_page_is_reported_not_queued(student, notifier, toasts):
    service = FakeService((502, "<html><h1>502 Bad Gateway</h1></html>"))
    sender = build_sender(EmailSender, service, notifier)

    outcome = await sender.deliver(student, "absent")

    assert outcome.success is False
    assert outcome.error_kind is ErrorKind.MALFORMED_RESPONSE
    assert sender._queue.size == 0
    [toast] = drain_toasts(toasts)
    assert toast.title == "Email Failed"
    assert toast.message.startswith("Failed to send notification to Kebede Alemu: ")


@pytest.mark.asyncio
async def test_unsuccessful_reply_uses_service_message(student, notifier, toasts):
    service = FakeService((200, {"success": False, "message": "Daily quota exceeded"}))
    sender = build_sender(EmailSender, service, notifier)

    outcome = await sender.deliver(student, "absent")

    assert outcome.error_kind is ErrorKind.GENERIC_FAILURE
    [toast] = drain_toasts(toasts)
    assert toast.message == "Failed to send notification to Kebede Alemu: Daily quota exceeded"


@pytest.mark.asyncio
async def test_network_error_while_online_is_not_queued(student, notifier, toasts):
    service = FakeService(httpx.ConnectError("connection refused"))
    sender = build_sender(EmailSender, service, notifier)

    outcome = await sender.deliver(student, "absent")

    assert outcome.error_kind is ErrorKind.GENERIC_FAILURE
    assert sender._queue.size == 0
    [toast] = drain_toasts(toasts)
    assert toast.title == "Email Failed"
    assert toast.message == "Failed to send notification to Kebede Alemu: connection refused"


@pytest.mark.asyncio
async def test_link_drop_during_request_is_queued(student, notifier, toasts):
    """The platform reports offline while the request is in flight."""
    sender = None

    async def drop(request: httpx.Request) -> httpx.Response:
        await sender._monitor.set_online(False)
        raise httpx.ConnectError("network is unreachable")

    service = FakeService()
    sender = build_sender(EmailSender, service, notifier)
    sender._client._transport = httpx.MockTransport(drop)

    outcome = await sender.deliver(student, "absent")

    assert outcome.error_kind is ErrorKind.OFFLINE
    assert sender._queue.size == 1
    assert [t.title for t in drain_toasts(toasts)] == ["Email Queued"]
