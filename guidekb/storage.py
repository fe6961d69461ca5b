"""Key-value storage interface for the corpus cache.

The cache needs a store that can:
  - return the string stored under a key (or nothing)
  - store a string under a key, possibly refusing it (quota)
  - remove a key

``FileKeyValueStore`` is the default, a single JSON file on disk. Anything
implementing ``KeyValueStore`` can be used instead (sqlite, a browser-style
local store, a test double …).
"""

import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from .errors import StorageError, StorageQuotaExceeded

try:
    import fcntl
    _HAS_FCNTL = True
except ImportError:
    _HAS_FCNTL = False  # Windows fallback


class KeyValueStore(ABC):
    """Abstract string key-value store."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the value stored under ``key``, or ``None`` if absent."""
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``.

        Raises:
            StorageQuotaExceeded: if the store refuses the value for size.
            StorageError: for any other rejection.
        """
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete ``key``. Removing a missing key is not an error."""
        ...

    @property
    def name(self) -> str:
        """Human-readable store name."""
        return self.__class__.__name__


class FileKeyValueStore(KeyValueStore):
    """All keys in one JSON object file, guarded by ``fcntl`` locks on Unix.

    Args:
        path: File to keep the JSON object in. Parent dirs are created on write.
        quota_bytes: Optional cap on the encoded size of a single value.
    """

    def __init__(self, path, quota_bytes: Optional[int] = None):
        self.path = Path(path)
        self.quota_bytes = quota_bytes

    def get(self, key: str) -> Optional[str]:
        if not self.path.exists():
            return None
        with open(self.path, "r", encoding="utf-8") as f:
            if _HAS_FCNTL:
                fcntl.flock(f, fcntl.LOCK_SH)
            try:
                data = self._parse(f.read())
            finally:
                if _HAS_FCNTL:
                    fcntl.flock(f, fcntl.LOCK_UN)
        val = data.get(key)
        return val if isinstance(val, str) else None

    def set(self, key: str, value: str) -> None:
        size = len(value.encode("utf-8"))
        if self.quota_bytes is not None and size > self.quota_bytes:
            raise StorageQuotaExceeded(key, size, self.quota_bytes)

        def _update(data):
            data[key] = value
        self._locked_rw(_update)

    def remove(self, key: str) -> None:
        if not self.path.exists():
            return

        def _update(data):
            data.pop(key, None)
        self._locked_rw(_update)

    def _locked_rw(self, fn):
        """Read-modify-write with exclusive file lock (Unix) or no-lock fallback (Windows)."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch(exist_ok=True)
            with open(self.path, "r+", encoding="utf-8") as f:
                if _HAS_FCNTL:
                    fcntl.flock(f, fcntl.LOCK_EX)
                try:
                    data = self._parse(f.read())
                    fn(data)
                    f.seek(0)
                    f.truncate()
                    f.write(json.dumps(data, ensure_ascii=False))
                    f.flush()
                    os.fsync(f.fileno())
                finally:
                    if _HAS_FCNTL:
                        fcntl.flock(f, fcntl.LOCK_UN)
        except OSError as e:
            raise StorageError(f"{self.path}: {e}") from e

    @staticmethod
    def _parse(raw: str) -> dict:
        raw = raw.strip()
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            # A damaged store file is reset rather than blocking every key.
            return {}
        return data if isinstance(data, dict) else {}

    @property
    def name(self) -> str:
        return f"File({self.path})"
