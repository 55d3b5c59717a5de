"""
Logging for Tally.

setup_logging() routes the "tally" logger to stderr (quiet by default)
and to a per-day file. EventLogger is bus middleware that appends every
event to a per-day JSON-lines file: the audit trail of what was sent,
queued, retried and dropped.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import aiofiles

from tally.core.bus import MiddlewareNext
from tally.core.events import Event

CONSOLE_FORMAT = "[%(levelname)s] %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_LOG_DIR = Path.home() / ".tally" / "logs"


def _day_stamp(ts: float | None = None) -> str:
    moment = datetime.fromtimestamp(ts) if ts is not None else datetime.now()
    return moment.strftime("%Y%m%d")


def setup_logging(
    log_dir: Path | None = None,
    console_level: int | str = logging.WARNING,
    file_level: int | str = logging.DEBUG,
) -> logging.Logger:
    """
    Route the "tally" logger to stderr and to tally_YYYYMMDD.log.

    Calling it again replaces (and closes) the previous handlers.
    """
    directory = Path(log_dir or DEFAULT_LOG_DIR).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    log_file = directory / f"tally_{_day_stamp()}.log"

    root = logging.getLogger("tally")
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    root.setLevel(logging.DEBUG)

    console = logging.StreamHandler()
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))

    to_file = logging.FileHandler(log_file, encoding="utf-8")
    to_file.setLevel(file_level)
    to_file.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root.addHandler(console)
    root.addHandler(to_file)
    root.debug(f"Logging to {log_file}")
    return root


class EventLogger:
    """
    Bus middleware that records events as JSON lines.

    Usage:
        event_logger = EventLogger(Path("~/.tally/logs"))
        bus.use(event_logger.middleware)
    """

    def __init__(self, log_dir: Path | None = None, log_events: bool = True) -> None:
        self._dir = Path(log_dir or DEFAULT_LOG_DIR).expanduser()
        self._enabled = log_events
        self._logger = logging.getLogger("tally.events")

    @property
    def events_file(self) -> Path:
        """Today's events file."""
        return self._dir / f"events_{_day_stamp()}.jsonl"

    async def middleware(self, event: Event, proceed: MiddlewareNext) -> Event:
        self._logger.debug(f"{event.type} from {event.source or '?'}: {event.data}")
        if self._enabled:
            await self._append(event)
        return await proceed(event)

    async def _append(self, event: Event) -> None:
        line = json.dumps(
            {
                "timestamp": datetime.fromtimestamp(event.timestamp).isoformat(),
                "id": event.id,
                "type": event.type,
                "source": event.source,
                "data": {k: _jsonable(v) for k, v in event.data.items()},
            }
        )
        path = self._dir / f"events_{_day_stamp(event.timestamp)}.jsonl"
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, mode="a", encoding="utf-8") as f:
                await f.write(line + "\n")
        except OSError as e:
            self._logger.warning(f"Event log write failed: {e}")


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value
