"""
School settings read.

The settings screen (outside Tally) owns a JSON record in the key-value
store. Senders call get_school_info() before every composed message so
an edited school name or phone takes effect on the next send without a
restart. The record is validated into a typed SchoolInfo; anything
missing or unreadable falls back to the configured defaults.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tally.core.config import SchoolConfig
from tally.core.errors import StorageError
from tally.store.base import StorageProvider

logger = logging.getLogger(__name__)


class SchoolInfo(BaseModel):
    """Read-only snapshot of the school identity used in messages."""

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, extra="ignore", coerce_numbers_to_str=True
    )

    name: str = Field(default="", alias="schoolName")
    phone: str = Field(default="", alias="schoolPhone")
    notification_email: str = Field(default="", alias="notificationEmail")

    @classmethod
    def from_config(cls, school: SchoolConfig) -> SchoolInfo:
        return cls(
            name=school.name,
            phone=school.phone,
            notification_email=school.notification_email,
        )


class SettingsProvider(ABC):
    """Source of the current SchoolInfo."""

    @abstractmethod
    async def get_school_info(self) -> SchoolInfo:
        """Return a fresh snapshot. Must not raise."""
        ...


class StaticSettings(SettingsProvider):
    """Fixed school identity taken from configuration."""

    def __init__(self, school: SchoolConfig | SchoolInfo) -> None:
        if isinstance(school, SchoolConfig):
            school = SchoolInfo.from_config(school)
        self._info = school

    async def get_school_info(self) -> SchoolInfo:
        return self._info


class StoredSettings(SettingsProvider):
    """
    Reads the settings record from storage on every call.

    Blank fields in the stored record are filled from the configured
    fallback; the older `emailUsername` key is accepted for the
    notification address.
    """

    def __init__(self, storage: StorageProvider, fallback: SchoolConfig) -> None:
        self._storage = storage
        self._fallback = fallback

    async def get_school_info(self) -> SchoolInfo:
        default = SchoolInfo.from_config(self._fallback)
        try:
            raw = await self._storage.get(self._fallback.settings_key)
        except StorageError as e:
            logger.error(f"Error getting school info: {e}")
            return default
        if raw is None:
            return default

        try:
            record = json.loads(raw)
            if not isinstance(record, dict):
                raise ValueError("settings record is not an object")
            if not record.get("notificationEmail") and record.get("emailUsername"):
                record["notificationEmail"] = record["emailUsername"]
            stored = SchoolInfo.model_validate(
                {k: v for k, v in record.items() if v is not None}
            )
        except (ValueError, ValidationError) as e:
            logger.error(f"Unreadable settings record, using defaults: {e}")
            return default

        return SchoolInfo(
            name=stored.name or default.name,
            phone=stored.phone or default.phone,
            notification_email=stored.notification_email or default.notification_email,
        )
