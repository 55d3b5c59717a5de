"""Toast sinks: where user-visible notifications end up."""

from tally.notifications.sinks.console import ConsoleSink
from tally.notifications.sinks.file import FileSink
from tally.notifications.sinks.queue import QueueSink

__all__ = ["ConsoleSink", "FileSink", "QueueSink"]
