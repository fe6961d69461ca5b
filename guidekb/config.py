"""Configuration: env vars, tunables, logging."""

import os
import logging
from dataclasses import dataclass
from pathlib import Path


def env(name: str, default: str = "") -> str:
    v = os.getenv(name, default)
    return v.strip() if isinstance(v, str) else v


# ── Logging ──
log = logging.getLogger("guidekb")
if not log.handlers:
    _h = logging.StreamHandler()
    _h.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s", datefmt="%H:%M:%S"))
    log.addHandler(_h)
    log.setLevel(logging.DEBUG if os.getenv("GUIDEKB_DEBUG") else logging.INFO)


# ── Paths ──
DATA_PATH = env("GUIDEKB_DATA_PATH", str(Path.cwd() / "data"))
STORE_FILE = env("GUIDEKB_STORE_FILE", str(Path(DATA_PATH) / "kv_store.json"))
OVERRIDES_LOCATION = env("GUIDEKB_OVERRIDES", str(Path(DATA_PATH) / "verified_overrides.json"))

# ── Remote dataset ──
ROWS_URL = env("GUIDEKB_ROWS_URL", "https://datasets-server.huggingface.co/rows")
DATASET = env("GUIDEKB_DATASET", "millat/indian_university_guidance_for_bangladeshi_students")
DATASET_CONFIG = env("GUIDEKB_DATASET_CONFIG", "default")
DATASET_SPLIT = env("GUIDEKB_DATASET_SPLIT", "train")
HTTP_TIMEOUT = float(env("GUIDEKB_HTTP_TIMEOUT", "30"))

# ── Tunables ──
PAGE_SIZE = int(env("GUIDEKB_PAGE_SIZE", "100"))
MAX_ENTRIES = int(env("GUIDEKB_MAX_ENTRIES", "10000"))
CACHE_TTL_DAYS = float(env("GUIDEKB_CACHE_TTL_DAYS", "7"))
# Estimate of the remote dataset size; used only for completeness detection.
EXPECTED_REMOTE_COUNT = int(env("GUIDEKB_EXPECTED_REMOTE_COUNT", "1000"))
CACHE_VERSION = env("GUIDEKB_CACHE_VERSION", "v2")
CACHE_KEY = env("GUIDEKB_CACHE_KEY", "guidekb_dataset_cache")
TOP_K = int(env("GUIDEKB_TOP_K", "5"))


@dataclass
class Settings:
    """All tunables in one object, so a service can be built without globals."""

    rows_url: str = ROWS_URL
    dataset: str = DATASET
    dataset_config: str = DATASET_CONFIG
    dataset_split: str = DATASET_SPLIT
    http_timeout: float = HTTP_TIMEOUT

    page_size: int = PAGE_SIZE
    max_entries: int = MAX_ENTRIES
    cache_ttl_days: float = CACHE_TTL_DAYS
    expected_remote_count: int = EXPECTED_REMOTE_COUNT
    cache_version: str = CACHE_VERSION
    cache_key: str = CACHE_KEY
    top_k: int = TOP_K

    store_file: str = STORE_FILE
    overrides_location: str = OVERRIDES_LOCATION

    @classmethod
    def from_env(cls) -> "Settings":
        """Re-read the environment (module constants are captured at import)."""
        data_path = env("GUIDEKB_DATA_PATH", str(Path.cwd() / "data"))
        return cls(
            rows_url=env("GUIDEKB_ROWS_URL", ROWS_URL),
            dataset=env("GUIDEKB_DATASET", DATASET),
            dataset_config=env("GUIDEKB_DATASET_CONFIG", DATASET_CONFIG),
            dataset_split=env("GUIDEKB_DATASET_SPLIT", DATASET_SPLIT),
            http_timeout=float(env("GUIDEKB_HTTP_TIMEOUT", str(HTTP_TIMEOUT))),
            page_size=int(env("GUIDEKB_PAGE_SIZE", str(PAGE_SIZE))),
            max_entries=int(env("GUIDEKB_MAX_ENTRIES", str(MAX_ENTRIES))),
            cache_ttl_days=float(env("GUIDEKB_CACHE_TTL_DAYS", str(CACHE_TTL_DAYS))),
            expected_remote_count=int(env("GUIDEKB_EXPECTED_REMOTE_COUNT", str(EXPECTED_REMOTE_COUNT))),
            cache_version=env("GUIDEKB_CACHE_VERSION", CACHE_VERSION),
            cache_key=env("GUIDEKB_CACHE_KEY", CACHE_KEY),
            top_k=int(env("GUIDEKB_TOP_K", str(TOP_K))),
            store_file=env("GUIDEKB_STORE_FILE", str(Path(data_path) / "kv_store.json")),
            overrides_location=env("GUIDEKB_OVERRIDES", str(Path(data_path) / "verified_overrides.json")),
        )


def validate_settings(settings: Settings) -> None:
    problems = []
    if settings.page_size <= 0:
        problems.append("GUIDEKB_PAGE_SIZE must be > 0")
    if settings.max_entries <= 0:
        problems.append("GUIDEKB_MAX_ENTRIES must be > 0")
    if settings.cache_ttl_days <= 0:
        problems.append("GUIDEKB_CACHE_TTL_DAYS must be > 0")
    if settings.top_k <= 0:
        problems.append("GUIDEKB_TOP_K must be > 0")
    if settings.expected_remote_count < 0:
        problems.append("GUIDEKB_EXPECTED_REMOTE_COUNT must be >= 0")
    if problems:
        raise ValueError("Invalid configuration:\n" + "\n".join(problems))
