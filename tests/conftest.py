"""Shared test fixtures for Tally."""

import pytest

from tally.core.bus import EventBus
from tally.core.config import TallyConfig
from tally.core.types import Student
from tally.messaging.settings import SchoolInfo
from tally.notifications.notifier import Notifier
from tally.notifications.sinks import QueueSink
from tally.store.memory import InMemoryStorage


@pytest.fixture
def config(tmp_path):
    """A memory-backed config that never touches the home directory."""
    return TallyConfig(
        school={"name": "Bole Academy", "phone": "+251111223344"},
        queue={"backend": "memory", "retry_delay": 0},
        toasts={"log_path": ""},
        logging={"dir": str(tmp_path / "logs")},
    )


@pytest.fixture
def bus():
    """Create a fresh event bus."""
    return EventBus()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def toasts():
    """A QueueSink whose queue collects every toast shown."""
    return QueueSink()


@pytest.fixture
def notifier(toasts):
    notifier = Notifier()
    notifier.register(toasts)
    return notifier


@pytest.fixture
def school():
    return SchoolInfo(name="Bole Academy", phone="+251111223344")


@pytest.fixture
def student():
    return Student(
        id="s-1",
        name="Abebe Kebede",
        grade="Grade 5",
        parent_name="Kebede Alemu",
        parent_email="kebede@example.com",
        parent_phone="0911223344",
    )
