"""Verified override set: a small curated list that always outranks the bulk dataset.

Override data is an enhancement, never a hard dependency: every failure ends
in an empty list and a warning.
"""

import json
from pathlib import Path

import requests

from .config import log
from .errors import OverrideLoadError
from .models import Entry

VERIFIED_CONTEXT = "Verified Official Information"
VERIFIED_SOURCE = "Official University Data"


def load_overrides(location, timeout: float = 30) -> list[Entry]:
    """Load and normalize the override set from a file path or http(s) URL.

    Returns:
        Entries in file order, each labelled with :data:`VERIFIED_CONTEXT`
        and :data:`VERIFIED_SOURCE`; ``[]`` on any failure.
    """
    if not location:
        return []
    try:
        raw = _read(str(location), timeout)
        entries = _normalize(raw)
    except OverrideLoadError as e:
        log.warning("verified overrides unavailable (%s): %s", location, e)
        return []
    log.info("verified overrides loaded: %d entries", len(entries))
    return entries


def is_override(entry: Entry) -> bool:
    return entry.context == VERIFIED_CONTEXT and entry.source == VERIFIED_SOURCE


def _read(location: str, timeout: float):
    if location.startswith(("http://", "https://")):
        try:
            r = requests.get(location, timeout=timeout)
            r.raise_for_status()
            return r.json()
        except requests.RequestException as e:
            raise OverrideLoadError(str(e)) from e
        except ValueError as e:
            raise OverrideLoadError(f"invalid JSON: {e}") from e

    p = Path(location)
    if not p.exists():
        raise OverrideLoadError("not found")
    try:
        return json.loads(p.read_text(encoding="utf-8"))
    except OSError as e:
        raise OverrideLoadError(str(e)) from e
    except ValueError as e:
        raise OverrideLoadError(f"invalid JSON: {e}") from e


def _normalize(raw) -> list[Entry]:
    if not isinstance(raw, list):
        raise OverrideLoadError(f"expected a list, got {type(raw).__name__}")
    entries = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise OverrideLoadError(f"item {i} is not an object")
        question = item.get("question")
        answer = item.get("answer")
        if not isinstance(question, str) or not isinstance(answer, str):
            raise OverrideLoadError(f"item {i} lacks a string question/answer")
        entries.append(Entry(
            question=question,
            answer=answer,
            context=VERIFIED_CONTEXT,
            source=VERIFIED_SOURCE,
        ))
    return entries
