"""
FileSink: appends every toast to ~/.tally/toasts.log.

A permanent record of what the user was told, useful when a parent
says a message never arrived.
"""

from __future__ import annotations

import datetime
import logging
from pathlib import Path

import aiofiles

from tally.notifications.base import Toast, ToastSink

logger = logging.getLogger(__name__)


class FileSink(ToastSink):
    def __init__(self, log_path: Path | str | None = None) -> None:
        self._log_path = Path(log_path or Path.home() / ".tally" / "toasts.log").expanduser()

    @property
    def name(self) -> str:
        return "file"

    async def deliver(self, toast: Toast) -> bool:
        try:
            self._log_path.parent.mkdir(parents=True, exist_ok=True)
            ts = datetime.datetime.fromtimestamp(toast.shown_at).strftime("%Y-%m-%d %H:%M:%S")
            entry = f"[{ts}] [{toast.level.value.upper()}] {toast.title}: {toast.message}\n"
            async with aiofiles.open(self._log_path, mode="a", encoding="utf-8") as f:
                await f.write(entry)
            return True
        except OSError as e:
            logger.warning(f"FileSink write failed: {e}")
            return False
