"""Local cache: one versioned, timestamped snapshot of the merged corpus.

Trust rule: a snapshot is used only if its format version matches and it is
younger than the freshness window. Corrupt or incompatible records are deleted
on read. An expired record is deleted on read too, unless the caller asks to
keep it as a fallback until the next write replaces it.
"""

import json
import time

from .config import log
from .errors import CacheCorruption, StorageError
from .models import CacheSnapshot, Entry
from .storage import KeyValueStore

_DAY = 86400


class CacheStore:
    """Reads and writes the corpus snapshot under a single storage key."""

    def __init__(self, store: KeyValueStore, key: str, format_version: str,
                 ttl_days: float, clock=time.time):
        self.store = store
        self.key = key
        self.format_version = format_version
        self.ttl_days = ttl_days
        self._clock = clock

    def read(self, accept_stale: bool = False, discard_expired: bool = True):
        """Return the stored :class:`CacheSnapshot`, or ``None``.

        Args:
            accept_stale: Skip the freshness check (the version check still
                applies). Used only by the fallback path.
            discard_expired: Delete an expired record. With ``False`` an
                expired record still reads as ``None`` but stays stored, so
                the fallback path can serve it if the reload fails.
        """
        raw = self.store.get(self.key)
        if raw is None:
            return None

        try:
            snapshot = self._decode(raw)
        except CacheCorruption as e:
            log.warning("cache corrupt, discarding: %s", e)
            self.store.remove(self.key)
            return None

        if snapshot.format_version != self.format_version:
            log.info("cache version %r != %r, discarding",
                     snapshot.format_version, self.format_version)
            self.store.remove(self.key)
            return None

        age_days = (self._clock() - snapshot.captured_at) / _DAY
        if age_days > self.ttl_days:
            if accept_stale:
                log.warning("using stale cache (%.1f days old)", age_days)
                return snapshot
            if not discard_expired:
                log.info("cache expired (%.1f days > %s)", age_days, self.ttl_days)
                return None
            log.info("cache expired (%.1f days > %s), discarding", age_days, self.ttl_days)
            self.store.remove(self.key)
            return None

        log.debug("cache hit: %d entries, %.1f days old", len(snapshot.corpus), age_days)
        return snapshot

    def prune(self) -> None:
        """Delete the stored record unless it is still trusted."""
        try:
            self.read()
        except (StorageError, OSError) as e:
            log.warning("cache prune failed: %s", e)

    def write(self, corpus: list[Entry], override_count: int) -> bool:
        """Persist ``corpus``. Returns ``False`` (and logs) if the store refuses it."""
        payload = json.dumps({
            "format_version": self.format_version,
            "captured_at": self._clock(),
            "override_count": override_count,
            "corpus": [e.to_dict() for e in corpus],
        }, ensure_ascii=False)
        try:
            self.store.set(self.key, payload)
        except (StorageError, OSError) as e:
            log.warning("cache write skipped, corpus kept in memory only: %s", e)
            return False
        log.info("cache written: %d entries (%d verified)", len(corpus), override_count)
        return True

    def clear(self) -> None:
        self.store.remove(self.key)
        log.info("cache cleared")

    @staticmethod
    def _decode(raw: str) -> CacheSnapshot:
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise CacheCorruption(f"invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise CacheCorruption("snapshot is not an object")

        version = data.get("format_version")
        captured_at = data.get("captured_at")
        override_count = data.get("override_count", 0)
        rows = data.get("corpus")
        if not isinstance(version, str):
            raise CacheCorruption("missing format_version")
        if isinstance(captured_at, bool) or not isinstance(captured_at, (int, float)):
            raise CacheCorruption("missing captured_at")
        if not isinstance(rows, list):
            raise CacheCorruption("missing corpus")
        if isinstance(override_count, bool) or not isinstance(override_count, int) \
                or not 0 <= override_count <= len(rows):
            raise CacheCorruption(f"bad override_count {override_count!r}")

        try:
            corpus = [Entry.from_row(r) for r in rows]
        except ValueError as e:
            raise CacheCorruption(str(e)) from e

        return CacheSnapshot(
            format_version=version,
            captured_at=float(captured_at),
            override_count=override_count,
            corpus=corpus,
        )
