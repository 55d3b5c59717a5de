"""
Tally Kernel: builds and owns the notification core for one school.

Everything is constructed explicitly here and handed to whoever needs
it; there are no module-level singletons. One Kernel per running
process gives the "one queue per process" guarantee.

Lifecycle:
    kernel = Kernel(config)
    await kernel.start()      # open storage, load the queue, drain if online
    ...
    await kernel.stop()       # cancel deferred drains, close client + storage
"""

from __future__ import annotations

import logging
from pathlib import Path

import httpx

from tally.core.bus import EventBus
from tally.core.config import TallyConfig
from tally.core.events import Event, EventType
from tally.delivery.client import DeliveryClient
from tally.delivery.dispatcher import CombinedDispatcher
from tally.delivery.mail import EmailSender
from tally.delivery.sms import SmsSender
from tally.messaging.settings import SettingsProvider, StoredSettings
from tally.middleware.logging import EventLogger, setup_logging
from tally.notifications.notifier import Notifier
from tally.notifications.sinks import ConsoleSink, FileSink
from tally.store.base import StorageProvider
from tally.store.memory import InMemoryStorage
from tally.store.sqlite import SQLiteStorage
from tally.sync.connectivity import ConnectivityMonitor
from tally.sync.queue import RetryQueue

logger = logging.getLogger(__name__)


class Kernel:
    """
    Composes config, event bus, toasts, storage, queue, monitor,
    senders and dispatcher.

    Storage, settings and HTTP transport can be injected. Storage the
    kernel did not create is never closed by it.
    """

    def __init__(
        self,
        config: TallyConfig | None = None,
        storage: StorageProvider | None = None,
        settings: SettingsProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        online: bool = True,
    ) -> None:
        self.config = config or TallyConfig.load()
        self.bus = EventBus()
        self.notifier = Notifier(self.config.toasts)
        if self.config.toasts.log_path:
            self.notifier.register(FileSink(self.config.toasts.log_path))
        if self.config.toasts.console:
            self.notifier.register(ConsoleSink())

        self._owns_storage = storage is None
        self.storage = storage or self._make_storage()
        self.settings = settings or StoredSettings(self.storage, self.config.school)

        delivery = self.config.delivery
        self.client = DeliveryClient(delivery.base_url, delivery.timeout, transport)
        self.monitor = ConnectivityMonitor(online, bus=self.bus, notifier=self.notifier)
        self.queue = RetryQueue(
            self.client,
            storage=self.storage,
            is_online=lambda: self.monitor.is_online,
            bus=self.bus,
            storage_key=self.config.queue.storage_key,
            drain_path=delivery.drain_path,
            max_retries=self.config.queue.max_retries,
            retry_delay=self.config.queue.retry_delay,
        )
        self.monitor.on_reconnect(self.queue.drain)

        common = dict(
            client=self.client,
            settings=self.settings,
            queue=self.queue,
            monitor=self.monitor,
            notifier=self.notifier,
            bus=self.bus,
        )
        self.email = EmailSender(path=delivery.email_path, **common)
        self.sms = SmsSender(path=delivery.sms_path, **common)
        self.dispatcher = CombinedDispatcher(self.email, self.sms, self.notifier)
        self._running = False

    def _make_storage(self) -> StorageProvider:
        if self.config.queue.backend == "memory":
            return InMemoryStorage()
        return SQLiteStorage(self.config.get_queue_db_path(), namespace=self.config.school.id)

    def enable_logging(self) -> EventLogger:
        """Configure log files and record every bus event as JSON lines."""
        log_dir = Path(self.config.logging.dir).expanduser()
        setup_logging(log_dir, console_level=self.config.logging.console_level.upper())
        event_logger = EventLogger(log_dir, log_events=self.config.logging.log_events)
        self.bus.use(event_logger.middleware)
        return event_logger

    # ━━━ Lifecycle ━━━

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        logger.info("Tally kernel starting")
        await self.storage.initialize()
        await self.queue.initialize()
        await self.bus.emit(
            Event(type=EventType.SYSTEM_START, source="kernel", data={"queued": self.queue.size})
        )
        # Work left over from a previous run goes out as soon as we can.
        if self.monitor.is_online:
            await self.queue.drain()

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        logger.info("Tally kernel stopping")
        await self.queue.close()
        await self.client.close()
        if self._owns_storage:
            await self.storage.close()
        await self.bus.emit(Event(type=EventType.SYSTEM_STOP, source="kernel"))
