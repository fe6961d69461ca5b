"""In-memory key-value store: implements KeyValueStore for testing.

No external dependencies. Stores everything in a plain dict.
"""

from __future__ import annotations

from typing import Optional

from .errors import StorageQuotaExceeded
from .storage import KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    """Pure in-memory store for unit / integration tests.

    Features:
        - Optional per-value quota, raising :class:`StorageQuotaExceeded`
          like a browser's local storage does when full.
        - Call counters (``gets``, ``sets``, ``removes``) for assertions.
        - Deterministic: no I/O, no threads.

    Example::

        store = InMemoryKeyValueStore(quota_bytes=10)
        store.set("k", "short")
        store.set("k", "far too long for the quota")  # raises
    """

    def __init__(self, initial: Optional[dict] = None, quota_bytes: Optional[int] = None):
        self._data: dict[str, str] = dict(initial or {})
        self.quota_bytes = quota_bytes
        self.gets = 0
        self.sets = 0
        self.removes = 0

    def get(self, key: str) -> Optional[str]:
        self.gets += 1
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self.sets += 1
        size = len(value.encode("utf-8"))
        if self.quota_bytes is not None and size > self.quota_bytes:
            raise StorageQuotaExceeded(key, size, self.quota_bytes)
        self._data[key] = value

    def remove(self, key: str) -> None:
        self.removes += 1
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)

    @property
    def name(self) -> str:
        return "InMemory"
