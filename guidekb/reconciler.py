"""Load state machine: decide between the cache, a resumed fetch and a fresh fetch.

States::

    CheckCache ─absent──────────────▶ FreshLoad ──┐
        │                                         │
        └present▶ EvaluateCompleteness            ├──▶ Resident
                     ├complete──────────────────▶ │
                     └incomplete▶ ResumeLoad ─────┘
    (unexpected error anywhere above) ─▶ Fallback ─▶ Resident

Ordinary degradation (a failed page, missing overrides, a refused cache
write) is absorbed by the component that sees it and never reaches Fallback.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional

from .cache import CacheStore
from .config import Settings, log
from .fetcher import FetchResult, RemoteSource, fetch_all
from .metrics import Metrics
from .models import Entry

STATE_CACHED = "cached"
STATE_FRESH = "fresh"
STATE_RESUMED = "resumed"
STATE_FALLBACK_STALE = "fallback_stale"
STATE_FALLBACK_OVERRIDES = "fallback_overrides"
STATE_FALLBACK_EMPTY = "fallback_empty"


@dataclass
class LoadResult:
    """The resident corpus plus how it was obtained."""

    corpus: list[Entry]
    override_count: int
    state: str
    complete: bool
    fetch: Optional[FetchResult] = None
    trace: dict = field(default_factory=dict)

    @property
    def overrides(self) -> list[Entry]:
        return self.corpus[:self.override_count]

    @property
    def bulk(self) -> list[Entry]:
        return self.corpus[self.override_count:]


def is_complete(corpus: list, override_count: int, expected_remote_count: int) -> bool:
    return (len(corpus) - override_count) >= expected_remote_count


def load_corpus(cache: CacheStore, source: RemoteSource, settings: Settings,
                override_loader: Callable[[], list[Entry]],
                metrics_path=None) -> LoadResult:
    """Run the state machine once and return the corpus to keep resident.

    Never raises for loading problems; the worst outcome is an empty corpus.
    """
    m = Metrics(metrics_path)
    try:
        result = _load(cache, source, settings, override_loader, m)
    except Exception as e:
        log.error("corpus load failed, entering fallback: %s", e, exc_info=True)
        m.step("load", False, {"error": str(e)})
        result = _fallback(cache, settings, override_loader, m)

    m.flag("state", result.state)
    m.flag("corpus_size", len(result.corpus))
    m.flag("override_count", result.override_count)
    try:
        result.trace = m.finalize()
    except OSError as e:
        log.warning("load report not written: %s", e)
        result.trace = m.data
    log.info("corpus resident: state=%s entries=%d verified=%d complete=%s",
             result.state, len(result.corpus), result.override_count, result.complete)
    return result


def _load(cache, source, settings, override_loader, m) -> LoadResult:
    # ── CheckCache ──
    # an expired record stays stored until a write replaces it
    snapshot = cache.read(discard_expired=False)
    m.step("check_cache", True, {"hit": snapshot is not None})

    if snapshot is None:
        return _fresh_load(cache, source, settings, override_loader, m)

    # ── EvaluateCompleteness ──
    complete = is_complete(snapshot.corpus, snapshot.override_count,
                           settings.expected_remote_count)
    m.step("evaluate_completeness", True, {
        "bulk": snapshot.bulk_count,
        "expected": settings.expected_remote_count,
        "complete": complete,
    })
    if complete:
        return LoadResult(
            corpus=list(snapshot.corpus),
            override_count=snapshot.override_count,
            state=STATE_CACHED,
            complete=True,
        )

    return _resume_load(cache, source, settings, snapshot, m)


def _fresh_load(cache, source, settings, override_loader, m) -> LoadResult:
    log.info("no usable cache, fetching dataset from offset 0")
    overrides = list(override_loader())
    m.step("load_overrides", True, {"count": len(overrides)})

    fetched = _run_fetch(source, settings, 0, m)
    corpus = overrides + fetched.entries
    written = cache.write(corpus, len(overrides))
    m.step("write_cache", written)
    if not written:
        cache.prune()

    return LoadResult(
        corpus=corpus,
        override_count=len(overrides),
        state=STATE_FRESH,
        complete=is_complete(corpus, len(overrides), settings.expected_remote_count),
        fetch=fetched,
    )


def _resume_load(cache, source, settings, snapshot, m) -> LoadResult:
    offset = snapshot.bulk_count
    log.info("cache incomplete (%d/%d bulk entries), resuming at offset %d",
             offset, settings.expected_remote_count, offset)

    fetched = _run_fetch(source, settings, offset, m)
    corpus = list(snapshot.corpus) + fetched.entries
    written = cache.write(corpus, snapshot.override_count)
    m.step("write_cache", written)

    return LoadResult(
        corpus=corpus,
        override_count=snapshot.override_count,
        state=STATE_RESUMED,
        complete=is_complete(corpus, snapshot.override_count, settings.expected_remote_count),
        fetch=fetched,
    )


def _run_fetch(source, settings, offset, m) -> FetchResult:
    fetched = fetch_all(source, start_offset=offset, page_size=settings.page_size,
                        max_entries=settings.max_entries)
    m.step("fetch", not fetched.partial, {
        "start_offset": offset,
        "fetched": len(fetched.entries),
        "pages": fetched.pages,
        "stop_reason": fetched.stop_reason,
    })

    reported = getattr(source, "reported_total", None)
    if reported is not None and reported != settings.expected_remote_count:
        log.warning("source reports %d rows but GUIDEKB_EXPECTED_REMOTE_COUNT=%d; "
                    "completeness detection uses the configured value",
                    reported, settings.expected_remote_count)
    return fetched


def _fallback(cache, settings, override_loader, m) -> LoadResult:
    try:
        snapshot = cache.read(accept_stale=True)
    except Exception as e:
        log.error("fallback cache read failed: %s", e)
        snapshot = None

    if snapshot is not None:
        m.step("fallback_stale_cache", True, {"entries": len(snapshot.corpus)})
        return LoadResult(
            corpus=list(snapshot.corpus),
            override_count=snapshot.override_count,
            state=STATE_FALLBACK_STALE,
            complete=is_complete(snapshot.corpus, snapshot.override_count,
                                 settings.expected_remote_count),
        )

    try:
        overrides = list(override_loader())
    except Exception as e:
        log.error("fallback override load failed: %s", e)
        overrides = []

    if overrides:
        m.step("fallback_overrides", True, {"count": len(overrides)})
        return LoadResult(
            corpus=overrides,
            override_count=len(overrides),
            state=STATE_FALLBACK_OVERRIDES,
            complete=is_complete(overrides, len(overrides), settings.expected_remote_count),
        )

    m.step("fallback_empty", True)
    return LoadResult(
        corpus=[],
        override_count=0,
        state=STATE_FALLBACK_EMPTY,
        complete=is_complete([], 0, settings.expected_remote_count),
    )
