"""
ConnectivityMonitor: online/offline state fed by the platform.

The host application forwards its network-reachability signal to
set_online(). The monitor never probes the network itself.

On the offline→online edge every registered reconnect handler runs once;
the kernel registers RetryQueue.drain there.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from tally.core.bus import EventBus
from tally.core.events import Event, EventType
from tally.notifications.notifier import Notifier

logger = logging.getLogger(__name__)

ReconnectHandler = Callable[[], Awaitable[None]]


class ConnectivityMonitor:
    """
    Usage:
        monitor = ConnectivityMonitor()
        monitor.on_reconnect(queue.drain)

        await monitor.set_online(False)   # platform says offline
        await monitor.set_online(True)    # → queue.drain() runs once
    """

    def __init__(
        self,
        online: bool = True,
        bus: EventBus | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._online = online
        self._was_offline = False
        self._bus = bus
        self._notifier = notifier
        self._handlers: list[ReconnectHandler] = []

    @property
    def is_online(self) -> bool:
        return self._online

    @property
    def was_offline(self) -> bool:
        """True after a reconnect, until the next time the link drops."""
        return self._was_offline

    def on_reconnect(self, handler: ReconnectHandler) -> None:
        self._handlers.append(handler)

    async def set_online(self, online: bool) -> None:
        """Record the platform's latest reachability signal."""
        if online == self._online:
            return
        self._online = online

        if not online:
            self._was_offline = False
            logger.info("Connectivity lost")
            await self._emit(EventType.CONNECTIVITY_OFFLINE)
            if self._notifier:
                await self._notifier.info(
                    "Offline", "You're offline. Changes will sync when you're back online."
                )
            return

        self._was_offline = True
        logger.info("Connectivity restored")
        await self._emit(EventType.CONNECTIVITY_ONLINE)
        if self._notifier:
            await self._notifier.info("Back Online", "Back online! Syncing your changes...")
        for handler in list(self._handlers):
            try:
                await handler()
            except Exception as e:
                logger.error(f"Reconnect handler failed: {e}", exc_info=e)

    async def _emit(self, event_type: str) -> None:
        if self._bus:
            await self._bus.emit(Event(type=event_type, source="connectivity"))
