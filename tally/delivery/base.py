"""
ChannelSender: the send flow shared by the email and SMS senders.

One call to deliver() walks these steps:

    1. resolve_recipient()   bad address/phone → error toast, no network call
    2. compose()             school settings are read fresh every time
    3. offline?              hand the composed payload to the retry queue
    4. POST to the channel endpoint, parse JSON (MalformedResponse if not)
    5. classify the reply    success / SetupRequired / ProviderError / failure

Failures never escape deliver(): each becomes a toast and a
DeliveryOutcome. Nothing is retried here. Only the offline case reaches
the queue, including a link that drops while the request is in flight.
"""

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

from tally.core.bus import EventBus
from tally.core.errors import (
    DeliveryError,
    ErrorKind,
    InvalidRecipient,
    ProviderError,
    SetupRequired,
)
from tally.core.events import Event, EventType
from tally.core.types import AttendanceStatus, Channel, DeliveryOutcome, Student
from tally.delivery.client import DeliveryClient
from tally.messaging.settings import SchoolInfo, SettingsProvider
from tally.notifications.notifier import Notifier
from tally.sync.connectivity import ConnectivityMonitor
from tally.sync.queue import RetryQueue

logger = logging.getLogger(__name__)

SetupCallback = Callable[[], Any]


class ChannelSender(ABC):
    """
    Abstract single-channel sender.

    Subclasses supply the channel specifics: how to find and validate
    the recipient, how to compose the payload, and how to word toasts.
    """

    channel: Channel
    label: str  # "Email" / "SMS", used in toast titles
    noun: str  # "notification" / "SMS", used in toast bodies
    setup_message: str
    provider_hint: str

    def __init__(
        self,
        client: DeliveryClient,
        settings: SettingsProvider,
        queue: RetryQueue,
        monitor: ConnectivityMonitor,
        notifier: Notifier,
        path: str,
        bus: EventBus | None = None,
    ) -> None:
        self._client = client
        self._settings = settings
        self._queue = queue
        self._monitor = monitor
        self._notifier = notifier
        self._path = path
        self._bus = bus
        self._on_setup_required: SetupCallback | None = None
        self._setup_prompted = False

    # ── Channel hooks ────────────────────────────────────────────────────────

    @abstractmethod
    def resolve_recipient(self, student: Student) -> str:
        """Return the deliverable address for this channel or raise InvalidRecipient."""
        ...

    @abstractmethod
    def rejection(self, student: Student, error: InvalidRecipient) -> tuple[str, str]:
        """Toast title and message for a refused recipient."""
        ...

    @abstractmethod
    def compose(
        self,
        student: Student,
        status: AttendanceStatus,
        note: str | None,
        school: SchoolInfo,
        recipient: str,
    ) -> dict[str, Any]:
        """Request body for the channel endpoint."""
        ...

    @abstractmethod
    def confirmation(
        self,
        body: dict[str, Any],
        student: Student,
        status: AttendanceStatus,
        recipient: str,
    ) -> tuple[str, str, str]:
        """(toast title, toast message, recipient actually reached) for a success reply."""
        ...

    # ── Setup guide ──────────────────────────────────────────────────────────

    def set_setup_required_callback(self, callback: SetupCallback | None) -> None:
        """Register the UI hook that opens the provider setup guide."""
        self._on_setup_required = callback
        self._setup_prompted = False

    def reset_setup_prompt(self) -> None:
        """Allow the setup guide to open again on the next SETUP_REQUIRED reply."""
        self._setup_prompted = False

    # ── Send flow ────────────────────────────────────────────────────────────

    async def send(
        self, student: Student, status: AttendanceStatus | str, note: str | None = None
    ) -> bool:
        """Send one notification. True only if the provider accepted it now."""
        outcome = await self.deliver(student, status, note)
        return outcome.success

    async def deliver(
        self, student: Student, status: AttendanceStatus | str, note: str | None = None
    ) -> DeliveryOutcome:
        status = AttendanceStatus(status)

        try:
            recipient = self.resolve_recipient(student)
        except InvalidRecipient as e:
            logger.error(f"Invalid {self.channel.value} recipient for {student.name}: {e.message}")
            title, message = self.rejection(student, e)
            await self._notifier.error(title, message)
            return await self._finish(
                DeliveryOutcome(
                    channel=self.channel,
                    success=False,
                    recipient_display=e.value,
                    error_kind=ErrorKind.INVALID_RECIPIENT,
                    message=message,
                )
            )

        school = await self._settings.get_school_info()
        payload = self.compose(student, status, note, school, recipient)

        if not self._monitor.is_online:
            return await self._defer(student, recipient, payload)

        try:
            status_code, body = await self._client.post_json(self._path, payload)
            self._raise_for_failure(status_code, body)
        except SetupRequired as e:
            return await self._setup_required(recipient, e)
        except ProviderError as e:
            message = f"{e.message}. {e.solution or self.provider_hint}"
            await self._notifier.error(f"{self.label} Configuration Error", message, 8000)
            return await self._failed(recipient, ErrorKind.PROVIDER_ERROR, message)
        except Exception as e:
            logger.error(
                f"Error sending {self.channel.value} to {recipient}: {e}",
                exc_info=not isinstance(e, DeliveryError),
            )
            if not self._monitor.is_online:
                return await self._defer(student, recipient, payload)
            kind = e.kind if isinstance(e, DeliveryError) else ErrorKind.GENERIC_FAILURE
            reason = e.message if isinstance(e, DeliveryError) else (str(e) or "Unknown error")
            message = f"Failed to send {self.noun} to {student.parent_name}: {reason}"
            await self._notifier.error(f"{self.label} Failed", message)
            return await self._failed(recipient, kind, message)

        title, message, reached = self.confirmation(body, student, status, recipient)
        await self._notifier.success(title, message)
        return await self._finish(
            DeliveryOutcome(
                channel=self.channel,
                success=True,
                recipient_display=reached,
                message=message,
            )
        )

    # ── Internals ────────────────────────────────────────────────────────────

    def _raise_for_failure(self, status_code: int, body: dict[str, Any]) -> None:
        if 200 <= status_code < 300 and body.get("success"):
            return

        error = body.get("error") or ""
        reason = body.get("message") or error or f"Failed to send {self.noun}"
        if error == "SETUP_REQUIRED":
            raise SetupRequired(reason, status_code=status_code, details=body)
        instructions = body.get("instructions")
        if isinstance(instructions, dict):
            raise ProviderError(
                reason,
                solution=instructions.get("solution") or "",
                status_code=status_code,
                details=body,
            )
        raise DeliveryError(reason, status_code=status_code, details=body)

    async def _setup_required(self, recipient: str, error: SetupRequired) -> DeliveryOutcome:
        await self._notifier.warning(f"{self.label} Setup Required", self.setup_message, 8000)
        if self._on_setup_required and not self._setup_prompted:
            self._setup_prompted = True
            try:
                result = self._on_setup_required()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(f"Setup guide callback failed: {e}")
        return await self._failed(recipient, ErrorKind.SETUP_REQUIRED, error.message)

    async def _defer(
        self, student: Student, recipient: str, payload: dict[str, Any]
    ) -> DeliveryOutcome:
        op_id = await self._queue.enqueue(
            self.channel,
            {**payload, "studentName": student.name, "parentName": student.parent_name},
        )
        message = f"{self.label} for {student.parent_name} will be sent when you're back online"
        await self._notifier.info(f"{self.label} Queued", message)
        outcome = DeliveryOutcome(
            channel=self.channel,
            success=False,
            recipient_display=recipient,
            error_kind=ErrorKind.OFFLINE,
            message=message,
        )
        await self._emit(EventType.DELIVERY_QUEUED, outcome, operation_id=op_id)
        return outcome

    async def _failed(self, recipient: str, kind: ErrorKind, message: str) -> DeliveryOutcome:
        return await self._finish(
            DeliveryOutcome(
                channel=self.channel,
                success=False,
                recipient_display=recipient,
                error_kind=kind,
                message=message,
            )
        )

    async def _finish(self, outcome: DeliveryOutcome) -> DeliveryOutcome:
        event_type = EventType.DELIVERY_SENT if outcome.success else EventType.DELIVERY_FAILED
        await self._emit(event_type, outcome)
        return outcome

    async def _emit(self, event_type: str, outcome: DeliveryOutcome, **extra: Any) -> None:
        if self._bus is None:
            return
        data = {
            "channel": outcome.channel.value,
            "recipient": outcome.recipient_display,
            "error_kind": outcome.error_kind.value if outcome.error_kind else None,
            **extra,
        }
        await self._bus.emit(Event(type=event_type, source=self.channel.value, data=data))
