"""
Dict-backed storage. Nothing survives the process.

Used by the tests and by the "memory" queue backend.
"""

from __future__ import annotations

from tally.store.base import StorageProvider


class InMemoryStorage(StorageProvider):
    """
    Usage:
        storage = InMemoryStorage()
        await storage.set("sync_queue", b"[]")
        assert await storage.get("sync_queue") == b"[]"

    `writes` counts set() calls so tests can assert on persistence.
    """

    def __init__(self) -> None:
        self._slots: dict[str, bytes] = {}
        self.writes = 0

    async def get(self, key: str) -> bytes | None:
        return self._slots.get(key)

    async def set(self, key: str, value: bytes) -> None:
        self._slots[key] = bytes(value)
        self.writes += 1

    async def delete(self, key: str) -> bool:
        return self._slots.pop(key, None) is not None

    async def close(self) -> None:
        self._slots.clear()
