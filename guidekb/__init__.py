"""guidekb: retrieval layer for a university-guidance chat assistant.

Architecture:
- RemoteSource: paginated bulk dataset (default: Hugging Face datasets-server)
- Verified overrides: small curated set, always the corpus prefix
- CacheStore: versioned, expiring snapshot in any KeyValueStore
- load_corpus: cache → completeness check → resume / fresh fetch → fallback
- rank + assemble: lexical top-K and the context block for the chat model
- DatasetService: one resident corpus, loaded at most once

Boundaries:
- guidekb does NOT call the chat model; it returns text for the caller's prompt
"""

# Re-export public API
from .config import Settings, env, log, validate_settings
from .errors import (
    GuideKBError, RemotePageError, OverrideLoadError, CacheCorruption,
    StorageError, StorageQuotaExceeded,
)
from .models import Entry, EntryMetadata, CacheSnapshot
from .storage import KeyValueStore, FileKeyValueStore
from .storage_memory import InMemoryKeyValueStore
from .fetcher import RemoteSource, HuggingFaceRowsSource, FetchResult, fetch_all
from .overrides import load_overrides, is_override, VERIFIED_CONTEXT, VERIFIED_SOURCE
from .cache import CacheStore
from .reconciler import LoadResult, load_corpus, is_complete
from .ranker import jaccard, score_entry, rank, rank_scored
from .context import assemble, build_knowledge_base, NO_MATCH_TEXT
from .service import DatasetService

__all__ = [
    # query interface
    "DatasetService",
    # data model
    "Entry", "EntryMetadata", "CacheSnapshot",
    # storage
    "KeyValueStore", "FileKeyValueStore", "InMemoryKeyValueStore",
    # acquisition
    "RemoteSource", "HuggingFaceRowsSource", "FetchResult", "fetch_all",
    "load_overrides", "is_override", "VERIFIED_CONTEXT", "VERIFIED_SOURCE",
    # cache + reconcile
    "CacheStore", "LoadResult", "load_corpus", "is_complete",
    # ranking + rendering
    "jaccard", "score_entry", "rank", "rank_scored",
    "assemble", "build_knowledge_base", "NO_MATCH_TEXT",
    # errors
    "GuideKBError", "RemotePageError", "OverrideLoadError", "CacheCorruption",
    "StorageError", "StorageQuotaExceeded",
    # config
    "Settings", "env", "log", "validate_settings",
]
