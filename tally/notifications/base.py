"""
Toast primitives: Toast dataclass and ToastSink ABC.

A toast is the short user-facing message that follows every send,
deferral or failure. Each display surface (the UI's toast queue, a log
file, a terminal) implements ToastSink. The Notifier fans toasts out.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum


class ToastLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(slots=True)
class Toast:
    """A single user-visible notification."""

    title: str
    message: str
    level: ToastLevel = ToastLevel.INFO
    duration: int = 4000  # milliseconds
    shown_at: float = field(default_factory=time.time)

    @property
    def variant(self) -> str:
        """UI component variant name for this level."""
        if self.level is ToastLevel.ERROR:
            return "destructive"
        if self.level is ToastLevel.INFO:
            return "default"
        return self.level.value


class ToastSink(ABC):
    """
    Abstract display target.

    The notifier skips a sink whose is_active is False.
    deliver() returns True if the toast was actually shown or recorded.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier, e.g. 'queue', 'file', 'console'."""
        ...

    @property
    def is_active(self) -> bool:
        return True

    @abstractmethod
    async def deliver(self, toast: Toast) -> bool:
        ...
