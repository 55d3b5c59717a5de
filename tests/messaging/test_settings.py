"""Tests for school settings providers."""

import json

import pytest
from tally.core.config import SchoolConfig
from tally.core.errors import StorageError
from tally.messaging.settings import SchoolInfo, StaticSettings, StoredSettings
from tally.store.memory import InMemoryStorage


class BrokenStorage(InMemoryStorage):
    async def get(self, key: str) -> bytes | None:
        raise StorageError("disk on fire")


@pytest.fixture
def fallback():
    return SchoolConfig(name="Bole Academy", phone="+251111223344")


async def _store(storage, record) -> None:
    await storage.set("attendance_settings", json.dumps(record).encode())


@pytest.mark.asyncio
async def test_missing_record_uses_fallback(storage, fallback):
    info = await StoredSettings(storage, fallback).get_school_info()

    assert info == SchoolInfo(name="Bole Academy", phone="+251111223344")


@pytest.mark.asyncio
async def test_stored_record_wins(storage, fallback):
    await _store(
        storage,
        {
            "schoolName": "Entoto School",
            "schoolPhone": "0111000000",
            "notificationEmail": "office@entoto.et",
            "theme": "dark",
        },
    )

    info = await StoredSettings(storage, fallback).get_school_info()

    assert info.name == "Entoto School"
    assert info.phone == "0111000000"
    assert info.notification_email == "office@entoto.et"


@pytest.mark.asyncio
async def test_blank_fields_fall_back(storage, fallback):
    await _store(storage, {"schoolName": "", "schoolPhone": None})

    info = await StoredSettings(storage, fallback).get_school_info()

    assert info.name == "Bole Academy"
    assert info.phone == "+251111223344"


@pytest.mark.asyncio
async def test_email_username_accepted(storage, fallback):
    await _store(storage, {"emailUsername": "admin@bole.et"})

    info = await StoredSettings(storage, fallback).get_school_info()

    assert info.notification_email == "admin@bole.et"


@pytest.mark.asyncio
async def test_numeric_phone_coerced(storage, fallback):
    await _store(storage, {"schoolPhone": 111223344})

    info = await StoredSettings(storage, fallback).get_school_info()

    assert info.phone == "111223344"


@pytest.mark.asyncio
async def test_changes_visible_on_next_read(storage, fallback):
    settings = StoredSettings(storage, fallback)
    await _store(storage, {"schoolName": "Old Name"})
    assert (await settings.get_school_info()).name == "Old Name"

    await _store(storage, {"schoolName": "New Name"})
    assert (await settings.get_school_info()).name == "New Name"


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", [b"{not json", b"[1, 2]", b'"text"'])
async def test_unreadable_record_uses_fallback(storage, fallback, raw):
    await storage.set("attendance_settings", raw)

    info = await StoredSettings(storage, fallback).get_school_info()

    assert info.name == "Bole Academy"


@pytest.mark.asyncio
async def test_storage_failure_uses_fallback(fallback):
    info = await StoredSettings(BrokenStorage(), fallback).get_school_info()

    assert info.name == "Bole Academy"


@pytest.mark.asyncio
async def test_static_settings(fallback):
    info = await StaticSettings(fallback).get_school_info()

    assert info.name == "Bole Academy"
    assert info.phone == "+251111223344"
