"""
CombinedDispatcher: fans attendance notifications out to email and SMS.

Each requested channel is tried independently: an email that fails (or
needs setup) never stops the SMS for the same parent, and vice versa.

Bulk sends go channel by channel, each walking the list in order, so
toasts appear in list order within a channel.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from tally.core.types import (
    ALL_CHANNELS,
    AggregateResult,
    AttendanceStatus,
    BulkItem,
    Channel,
    DispatchResult,
    Student,
)
from tally.delivery.base import ChannelSender
from tally.notifications.notifier import Notifier

logger = logging.getLogger(__name__)


class CombinedDispatcher:
    """
    Usage:
        dispatcher = CombinedDispatcher(email_sender, sms_sender, notifier)

        result = await dispatcher.send_one(student, "absent", note="Fever")
        totals = await dispatcher.send_bulk(items, channels=[Channel.SMS])
        await dispatcher.notify_summary(totals)
    """

    def __init__(
        self,
        email: ChannelSender,
        sms: ChannelSender,
        notifier: Notifier | None = None,
    ) -> None:
        self._senders: dict[Channel, ChannelSender] = {Channel.EMAIL: email, Channel.SMS: sms}
        self._notifier = notifier

    async def send_one(
        self,
        student: Student,
        status: AttendanceStatus | str,
        note: str | None = None,
        channels: Iterable[Channel | str] = ALL_CHANNELS,
    ) -> DispatchResult:
        result = DispatchResult()
        for channel in _ordered(channels):
            ok = await self._senders[channel].send(student, status, note)
            setattr(result, channel.value, ok)
        return result

    async def send_bulk(
        self,
        items: Sequence[BulkItem],
        channels: Iterable[Channel | str] = ALL_CHANNELS,
    ) -> AggregateResult:
        result = AggregateResult()
        for channel in _ordered(channels):
            sender = self._senders[channel]
            counts = result.for_channel(channel)
            for item in items:
                counts.record(await sender.send(item.student, item.status, item.note))
            logger.info(
                f"Bulk {channel.value}: {counts.success} sent, {counts.failed} failed"
            )
        return result

    async def notify_summary(self, result: AggregateResult) -> None:
        """Show the end-of-batch toast."""
        if self._notifier is None:
            return
        title, message = result.summary()
        if title == "No Notifications":
            await self._notifier.info(title, message)
        elif title == "SMS Sent Successfully":
            await self._notifier.success(title, message, 4000)
        else:
            await self._notifier.success(title, message)


def _ordered(channels: Iterable[Channel | str]) -> list[Channel]:
    """Requested channels, deduplicated, email before SMS."""
    requested = {Channel(c) for c in channels}
    return [c for c in ALL_CHANNELS if c in requested]
