"""
Notifier: the user-visible side of every delivery decision.

Every registered, active sink receives every toast. A sink that fails
is logged and skipped; showing a toast never raises into the sender
that asked for it.
"""

from __future__ import annotations

import logging

from tally.core.config import ToastConfig
from tally.notifications.base import Toast, ToastLevel, ToastSink

logger = logging.getLogger(__name__)


class Notifier:
    """
    Routes toasts to the registered sinks.

    Usage:
        notifier = Notifier()
        notifier.register(QueueSink(ui_queue))
        notifier.register(FileSink())

        await notifier.error("SMS Failed", "Failed to send SMS to Abebe: ...")
    """

    def __init__(self, config: ToastConfig | None = None) -> None:
        self._config = config or ToastConfig()
        self._sinks: list[ToastSink] = []

    def register(self, sink: ToastSink) -> None:
        self._sinks.append(sink)
        logger.debug(f"Toast sink registered: {sink.name}")

    def unregister(self, name: str) -> None:
        self._sinks = [s for s in self._sinks if s.name != name]

    @property
    def sink_names(self) -> list[str]:
        return [s.name for s in self._sinks]

    def _default_duration(self, level: ToastLevel) -> int:
        if level is ToastLevel.SUCCESS:
            return self._config.success_duration
        if level is ToastLevel.ERROR:
            return self._config.error_duration
        return self._config.default_duration

    async def show(
        self,
        title: str,
        message: str,
        level: ToastLevel = ToastLevel.INFO,
        duration: int | None = None,
    ) -> Toast:
        toast = Toast(
            title=title,
            message=message,
            level=level,
            duration=duration or self._default_duration(level),
        )
        for sink in self._sinks:
            if not sink.is_active:
                continue
            try:
                await sink.deliver(toast)
            except Exception as e:
                logger.warning(f"Toast sink {sink.name} failed: {e}")
        return toast

    async def success(self, title: str, message: str, duration: int | None = None) -> Toast:
        return await self.show(title, message, ToastLevel.SUCCESS, duration)

    async def error(self, title: str, message: str, duration: int | None = None) -> Toast:
        return await self.show(title, message, ToastLevel.ERROR, duration)

    async def warning(self, title: str, message: str, duration: int | None = None) -> Toast:
        return await self.show(title, message, ToastLevel.WARNING, duration)

    async def info(self, title: str, message: str, duration: int | None = None) -> Toast:
        return await self.show(title, message, ToastLevel.INFO, duration)
