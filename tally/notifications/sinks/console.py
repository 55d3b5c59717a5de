"""
ConsoleSink: prints toasts to a terminal with rich.

Handy for kiosk deployments and for watching a bulk send from a shell.
"""

from __future__ import annotations

from rich.console import Console
from rich.text import Text

from tally.notifications.base import Toast, ToastLevel, ToastSink

_STYLES = {
    ToastLevel.SUCCESS: "bold green",
    ToastLevel.ERROR: "bold red",
    ToastLevel.WARNING: "bold yellow",
    ToastLevel.INFO: "bold cyan",
}


class ConsoleSink(ToastSink):
    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    @property
    def name(self) -> str:
        return "console"

    async def deliver(self, toast: Toast) -> bool:
        style = _STYLES[toast.level]
        self._console.print(Text.assemble((toast.title, style), (" - ", "dim"), toast.message))
        return True
