"""Tests for the paginated fetcher, the Hugging Face rows source and the override loader."""
import json
import os
import sys
import unittest
from unittest.mock import patch, MagicMock

import requests

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from guidekb.errors import RemotePageError
from guidekb.fetcher import (
    RemoteSource, HuggingFaceRowsSource, fetch_all,
    STOP_END_OF_DATA, STOP_EMPTY_PAGE, STOP_PAGE_FAILED, STOP_CEILING,
)
from guidekb.models import Entry
from guidekb.overrides import load_overrides, is_override, VERIFIED_CONTEXT, VERIFIED_SOURCE


class FakeSource(RemoteSource):
    """Serves ``total`` rows; offsets in ``fail_at`` raise RemotePageError."""

    def __init__(self, total, fail_at=()):
        self.rows = [Entry(question=f"q{i}", answer=f"a{i}") for i in range(total)]
        self.fail_at = set(fail_at)
        self.calls = []

    def fetch_page(self, offset, limit):
        self.calls.append((offset, limit))
        if offset in self.fail_at:
            raise RemotePageError(offset, "HTTP 503")
        return self.rows[offset:offset + limit]


# ─── fetch_all ───────────────────────────────────────────────

class TestFetchAll(unittest.TestCase):

    def test_short_page_ends_run(self):
        src = FakeSource(250)
        res = fetch_all(src, page_size=100, max_entries=10000)
        self.assertEqual(len(res.entries), 250)
        self.assertEqual(res.stop_reason, STOP_END_OF_DATA)
        self.assertEqual(src.calls, [(0, 100), (100, 100), (200, 100)])
        self.assertFalse(res.partial)

    def test_empty_page_ends_run(self):
        src = FakeSource(200)
        res = fetch_all(src, page_size=100, max_entries=10000)
        self.assertEqual(len(res.entries), 200)
        self.assertEqual(res.stop_reason, STOP_EMPTY_PAGE)
        self.assertEqual(len(src.calls), 3)

    def test_page_failure_keeps_earlier_pages(self):
        src = FakeSource(500, fail_at={100})
        res = fetch_all(src, page_size=100, max_entries=10000)
        self.assertEqual(len(res.entries), 100)
        self.assertEqual(res.stop_reason, STOP_PAGE_FAILED)
        self.assertTrue(res.partial)
        self.assertIsInstance(res.error, RemotePageError)
        # never retried
        self.assertEqual(src.calls, [(0, 100), (100, 100)])

    def test_first_page_failure_gives_empty_partial(self):
        res = fetch_all(FakeSource(10, fail_at={0}), page_size=5)
        self.assertEqual(res.entries, [])
        self.assertTrue(res.partial)

    def test_ceiling(self):
        src = FakeSource(1000)
        res = fetch_all(src, page_size=100, max_entries=250)
        self.assertEqual(len(res.entries), 250)
        self.assertEqual(res.stop_reason, STOP_CEILING)
        self.assertEqual(src.calls[-1], (200, 50))

    def test_start_offset_and_order(self):
        src = FakeSource(300)
        res = fetch_all(src, start_offset=120, page_size=100)
        offsets = [c[0] for c in src.calls]
        self.assertEqual(offsets, sorted(offsets))
        self.assertEqual(offsets[0], 120)
        self.assertEqual(res.entries[0].question, "q120")
        self.assertEqual(res.entries[-1].question, "q299")
        self.assertEqual(res.next_offset, 300)

    def test_start_at_ceiling_fetches_nothing(self):
        src = FakeSource(100)
        res = fetch_all(src, start_offset=100, max_entries=100)
        self.assertEqual(src.calls, [])
        self.assertEqual(res.stop_reason, STOP_CEILING)

    def test_oversized_page_is_trimmed(self):
        class Greedy(RemoteSource):
            def fetch_page(self, offset, limit):
                return [Entry(question="q", answer="a")] * (limit + 5) if offset == 0 else []
        res = fetch_all(Greedy(), page_size=10)
        self.assertEqual(len(res.entries), 10)


# ─── HuggingFaceRowsSource ───────────────────────────────────

def _response(payload=None, status_exc=None, json_exc=None, ctype="application/json"):
    resp = MagicMock()
    resp.headers = {"content-type": ctype}
    if status_exc is not None:
        resp.raise_for_status.side_effect = status_exc
    if json_exc is not None:
        resp.json.side_effect = json_exc
    else:
        resp.json.return_value = payload
    return resp


class TestHuggingFaceRowsSource(unittest.TestCase):

    def _source(self, session):
        return HuggingFaceRowsSource("https://rows.example/rows", "org/ds",
                                     config="default", split="train", timeout=5, session=session)

    def test_parses_rows(self):
        session = MagicMock()
        session.get.return_value = _response({
            "rows": [
                {"row_idx": 0, "row": {"question": "Fee?", "answer": "X", "context": "Fees",
                                       "source": "site", "metadata": {"tone": "formal",
                                                                      "cultural_sensitivity": True}}},
                {"row_idx": 1, "row": {"question": "Visa?", "answer": "Y"}},
            ],
            "num_rows_total": 1234,
        })
        src = self._source(session)
        page = src.fetch_page(200, 100)

        self.assertEqual(len(page), 2)
        self.assertEqual(page[0].context, "Fees")
        self.assertEqual(page[0].metadata.tone, "formal")
        self.assertTrue(page[0].metadata.cultural_sensitivity)
        self.assertEqual(page[1].context, "")
        self.assertIsNone(page[1].metadata)
        self.assertEqual(src.reported_total, 1234)

        _, kwargs = session.get.call_args
        self.assertEqual(kwargs["params"]["offset"], 200)
        self.assertEqual(kwargs["params"]["length"], 100)
        self.assertEqual(kwargs["params"]["dataset"], "org/ds")
        self.assertEqual(kwargs["timeout"], 5)

    def test_bad_status(self):
        session = MagicMock()
        session.get.return_value = _response(status_exc=requests.HTTPError("503 Server Error"))
        with self.assertRaises(RemotePageError) as ctx:
            self._source(session).fetch_page(100, 100)
        self.assertEqual(ctx.exception.offset, 100)

    def test_network_error(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("down")
        with self.assertRaises(RemotePageError):
            self._source(session).fetch_page(0, 100)

    def test_non_json(self):
        session = MagicMock()
        session.get.return_value = _response(json_exc=ValueError("no json"), ctype="text/html")
        with self.assertRaises(RemotePageError) as ctx:
            self._source(session).fetch_page(0, 100)
        self.assertIn("text/html", str(ctx.exception))

    def test_missing_rows(self):
        session = MagicMock()
        session.get.return_value = _response({"error": "nope"})
        with self.assertRaises(RemotePageError):
            self._source(session).fetch_page(0, 100)

    def test_malformed_row_fails_page(self):
        session = MagicMock()
        session.get.return_value = _response({"rows": [{"row": {"question": "only"}}]})
        with self.assertRaises(RemotePageError):
            self._source(session).fetch_page(0, 100)

    def test_uses_requests_by_default(self):
        with patch("guidekb.fetcher.requests.get") as get:
            get.return_value = _response({"rows": []})
            src = HuggingFaceRowsSource("https://rows.example/rows", "org/ds")
            self.assertEqual(src.fetch_page(0, 10), [])
            get.assert_called_once()


# ─── load_overrides ──────────────────────────────────────────

class TestLoadOverrides:

    def test_file(self, tmp_path):
        p = tmp_path / "overrides.json"
        p.write_text(json.dumps([{"question": "fee?", "answer": "X"},
                                 {"question": "visa?", "answer": "Y"}]), encoding="utf-8")
        entries = load_overrides(str(p))
        assert [e.question for e in entries] == ["fee?", "visa?"]
        assert all(e.context == VERIFIED_CONTEXT and e.source == VERIFIED_SOURCE for e in entries)
        assert all(is_override(e) for e in entries)

    def test_missing_file(self, tmp_path):
        assert load_overrides(str(tmp_path / "nope.json")) == []

    def test_empty_location(self):
        assert load_overrides("") == []
        assert load_overrides(None) == []

    def test_invalid_json(self, tmp_path):
        p = tmp_path / "o.json"
        p.write_text("[{", encoding="utf-8")
        assert load_overrides(str(p)) == []

    def test_wrong_shape(self, tmp_path):
        p = tmp_path / "o.json"
        p.write_text(json.dumps({"question": "fee?", "answer": "X"}), encoding="utf-8")
        assert load_overrides(str(p)) == []
        p.write_text(json.dumps([{"question": "fee?"}]), encoding="utf-8")
        assert load_overrides(str(p)) == []

    def test_url(self):
        with patch("guidekb.overrides.requests.get") as get:
            get.return_value = _response([{"question": "fee?", "answer": "X"}])
            entries = load_overrides("https://example.org/verified.json", timeout=3)
        assert len(entries) == 1
        get.assert_called_once_with("https://example.org/verified.json", timeout=3)

    def test_url_not_found(self):
        with patch("guidekb.overrides.requests.get") as get:
            get.return_value = _response(status_exc=requests.HTTPError("404 Not Found"))
            assert load_overrides("https://example.org/verified.json") == []

    def test_bundled_file_loads(self):
        root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        entries = load_overrides(os.path.join(root, "data", "verified_overrides.json"))
        assert len(entries) >= 1

    def test_bulk_entry_is_not_override(self):
        assert not is_override(Entry(question="q", answer="a", context="Fees"))
