"""Remote paginated fetcher for the bulk dataset.

The loop never retries: one failed page ends the run and everything gathered
before it is kept. A degraded corpus beats no corpus.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

import requests

from .config import log
from .errors import RemotePageError
from .models import Entry

STOP_END_OF_DATA = "end_of_data"
STOP_EMPTY_PAGE = "empty_page"
STOP_PAGE_FAILED = "page_failed"
STOP_CEILING = "ceiling"


class RemoteSource(ABC):
    """A tabular source that can be read one page at a time."""

    #: Total row count reported by the source, if it reports one.
    reported_total: Optional[int] = None

    @abstractmethod
    def fetch_page(self, offset: int, limit: int) -> list[Entry]:
        """Return up to ``limit`` entries starting at ``offset``.

        Raises:
            RemotePageError: if the page could not be retrieved or parsed.
        """
        ...


class HuggingFaceRowsSource(RemoteSource):
    """Reads a dataset split through the Hugging Face datasets-server ``/rows`` API.

    Response shape::

        {"rows": [{"row_idx": 0, "row": {...}}, ...], "num_rows_total": 1234}
    """

    def __init__(self, base_url: str, dataset: str, config: str = "default",
                 split: str = "train", timeout: float = 30, session=None):
        self.base_url = base_url
        self.dataset = dataset
        self.config = config
        self.split = split
        self.timeout = timeout
        self._http = session or requests
        self.reported_total = None

    def fetch_page(self, offset: int, limit: int) -> list[Entry]:
        params = {
            "dataset": self.dataset,
            "config": self.config,
            "split": self.split,
            "offset": offset,
            "length": limit,
        }
        try:
            r = self._http.get(self.base_url, params=params, timeout=self.timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            raise RemotePageError(offset, str(e)) from e

        try:
            payload = r.json()
        except ValueError as e:
            ctype = r.headers.get("content-type", "")
            raise RemotePageError(offset, f"non-JSON response (content-type={ctype})") from e

        rows = payload.get("rows") if isinstance(payload, dict) else None
        if not isinstance(rows, list):
            raise RemotePageError(offset, "payload has no 'rows' list")

        total = payload.get("num_rows_total")
        if isinstance(total, int):
            self.reported_total = total

        entries = []
        for i, item in enumerate(rows):
            row = item.get("row") if isinstance(item, dict) else None
            try:
                entries.append(Entry.from_row(row))
            except ValueError as e:
                # Skipping would shift every later offset, so the page fails instead.
                raise RemotePageError(offset, f"row {offset + i}: {e}") from e
        return entries


@dataclass
class FetchResult:
    """Outcome of one run of :func:`fetch_all`.

    Attributes:
        entries: Entries gathered in offset order.
        start_offset: Bulk offset the run started at.
        pages: Number of pages that returned successfully.
        stop_reason: One of ``end_of_data``, ``empty_page``, ``page_failed``, ``ceiling``.
        error: The page failure that ended the run, if any.
    """

    entries: list[Entry] = field(default_factory=list)
    start_offset: int = 0
    pages: int = 0
    stop_reason: str = STOP_END_OF_DATA
    error: Optional[RemotePageError] = None

    @property
    def partial(self) -> bool:
        return self.stop_reason == STOP_PAGE_FAILED

    @property
    def next_offset(self) -> int:
        return self.start_offset + len(self.entries)


def fetch_all(source: RemoteSource, start_offset: int = 0,
              page_size: int = 100, max_entries: int = 10000) -> FetchResult:
    """Fetch pages from ``start_offset`` until the data, the ceiling or a page runs out.

    ``max_entries`` caps the absolute bulk offset, so a resumed run stops at
    the same place a fresh one would.
    """
    result = FetchResult(start_offset=start_offset)
    offset = start_offset

    while True:
        if offset >= max_entries:
            result.stop_reason = STOP_CEILING
            break

        limit = min(page_size, max_entries - offset)
        try:
            page = source.fetch_page(offset, limit)
        except RemotePageError as e:
            log.warning("page fetch failed, keeping %d entries from this run: %s",
                        len(result.entries), e)
            result.stop_reason = STOP_PAGE_FAILED
            result.error = e
            break

        if not page:
            result.stop_reason = STOP_EMPTY_PAGE
            break

        page = page[:limit]
        result.entries.extend(page)
        result.pages += 1
        log.debug("page %d: offset=%d got=%d", result.pages, offset, len(page))
        offset += len(page)

        if len(page) < limit:
            result.stop_reason = STOP_END_OF_DATA
            break

    log.info("fetch run: start=%d fetched=%d pages=%d stop=%s",
             start_offset, len(result.entries), result.pages, result.stop_reason)
    return result
