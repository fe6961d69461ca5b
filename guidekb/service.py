"""Dataset service: the query interface handed to whoever talks to the chat model.

One instance owns one resident corpus. The first caller of ``ensure_loaded``
runs the load; callers arriving while it runs wait on the same future.
"""

import threading
import time
from concurrent.futures import Future, wait
from typing import Optional

from .cache import CacheStore
from .config import Settings, log, validate_settings
from .context import assemble, build_knowledge_base
from .fetcher import HuggingFaceRowsSource, RemoteSource
from .models import Entry
from .overrides import load_overrides
from .ranker import rank
from .reconciler import LoadResult, load_corpus
from .storage import FileKeyValueStore, KeyValueStore


class DatasetService:
    """Loads, caches and searches the reference corpus.

    Args:
        source: Paginated remote source of bulk entries.
        store: Key-value store backing the cache snapshot.
        settings: Tunables; defaults to :class:`Settings` built from env.
        override_location: Path or URL of the verified override set;
            defaults to ``settings.overrides_location``.
        clock: Time source for cache freshness (tests inject one).
    """

    def __init__(self, source: RemoteSource, store: KeyValueStore,
                 settings: Optional[Settings] = None, override_location=None,
                 clock=None, metrics_path=None):
        self.settings = settings or Settings()
        validate_settings(self.settings)
        self.source = source
        self.cache = CacheStore(
            store,
            key=self.settings.cache_key,
            format_version=self.settings.cache_version,
            ttl_days=self.settings.cache_ttl_days,
            clock=clock or time.time,
        )
        self.override_location = (override_location if override_location is not None
                                  else self.settings.overrides_location)
        self.metrics_path = metrics_path

        self._lock = threading.Lock()
        self._pending: Optional[Future] = None
        self._result: Optional[LoadResult] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs) -> "DatasetService":
        """Wire the Hugging Face source and file store from configuration."""
        settings = settings or Settings.from_env()
        source = HuggingFaceRowsSource(
            settings.rows_url,
            settings.dataset,
            config=settings.dataset_config,
            split=settings.dataset_split,
            timeout=settings.http_timeout,
        )
        store = FileKeyValueStore(settings.store_file)
        return cls(source, store, settings=settings, **kwargs)

    # ── Loading ──

    def ensure_loaded(self) -> list[Entry]:
        """Return the resident corpus, loading it on first use."""
        return self._ensure_result().corpus

    def _ensure_result(self) -> LoadResult:
        result = self._result
        if result is not None:
            return result

        with self._lock:
            if self._result is not None:
                return self._result
            pending = self._pending
            owner = pending is None
            if owner:
                pending = self._pending = Future()

        if not owner:
            return pending.result()

        try:
            result = load_corpus(self.cache, self.source, self.settings,
                                 self._load_overrides, metrics_path=self.metrics_path)
        except BaseException as e:
            with self._lock:
                self._pending = None
            pending.set_exception(e)
            raise

        with self._lock:
            self._result = result
            self._pending = None
        pending.set_result(result)
        return result

    def _load_overrides(self) -> list[Entry]:
        return load_overrides(self.override_location, timeout=self.settings.http_timeout)

    def force_refresh(self) -> list[Entry]:
        """Drop the cache and the resident corpus, then load from scratch.

        A load already in flight is allowed to finish first, so its write
        cannot land after the clear. A failed clear is logged and the reload
        still runs.
        """
        while True:
            with self._lock:
                pending = self._pending
                if pending is None:
                    try:
                        self.cache.clear()
                    except Exception as e:
                        log.error("cache clear failed, reloading anyway: %s", e)
                    self._result = None
                    break
            wait([pending])

        log.info("forced refresh")
        return self.ensure_loaded()

    @property
    def loaded(self) -> bool:
        return self._result is not None

    @property
    def last_load(self) -> Optional[LoadResult]:
        return self._result

    # ── Queries ──

    def search(self, query: str, top_k: Optional[int] = None) -> list[Entry]:
        corpus = self.ensure_loaded()
        k = self.settings.top_k if top_k is None else top_k
        hits = rank(query, corpus, k)
        log.debug("search %r: %d/%d hits", query[:60], len(hits), len(corpus))
        return hits

    def build_context(self, entries: list[Entry]) -> str:
        return assemble(entries)

    def knowledge_base(self, max_entries: int = 100) -> str:
        return build_knowledge_base(self.ensure_loaded(), max_entries=max_entries)

    def status(self) -> dict:
        result = self._result
        if result is None:
            return {"loaded": False, "store": self.cache.store.name}
        return {
            "loaded": True,
            "store": self.cache.store.name,
            "state": result.state,
            "entries": len(result.corpus),
            "verified": result.override_count,
            "bulk": len(result.corpus) - result.override_count,
            "expected_bulk": self.settings.expected_remote_count,
            "complete": result.complete,
        }
