"""
Storage capability interface.

A flat key-value store. The retry queue persists through it and the
settings reader pulls the school record from it. Components receive a
StorageProvider at construction; when none is given they run memory-only
instead of probing the runtime for a storage backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class StorageProvider(ABC):
    """
    Byte values under string keys.

    Callers serialize; a write replaces the whole value.
    Backends: SQLiteStorage (file, the default) and InMemoryStorage.
    """

    async def initialize(self) -> None:
        """Open whatever the backend needs. No-op by default."""

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Stored bytes, or None for an unknown key."""

    @abstractmethod
    async def set(self, key: str, value: bytes) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove key; False if it was not there."""

    @abstractmethod
    async def close(self) -> None:
        ...
