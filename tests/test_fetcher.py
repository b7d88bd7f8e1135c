from __future__ import annotations

import unittest
from unittest import mock

import requests

from config import PipelineConfig
from debug_tools import DebugRecorder, DebugSettings
from errors import FetchError
from fetcher import fetch_hymn_html, fetch_page, fetch_passage_html, fetch_passages, hymn_url


def _response(status: int = 200, text: str = "") -> mock.Mock:
    resp = mock.Mock()
    resp.status_code = status
    resp.text = text
    return resp


class TestFetchPage(unittest.TestCase):
    def setUp(self) -> None:
        self.config = PipelineConfig(fetch_delay_ms=0, request_timeout_s=5)

    @mock.patch("fetcher.requests.get")
    def test_ok(self, get) -> None:
        get.return_value = _response(200, "<html>ok</html>")
        self.assertEqual(fetch_page("https://example.org/x", self.config), "<html>ok</html>")
        self.assertEqual(get.call_args.kwargs["timeout"], 5)

    @mock.patch("fetcher.requests.get")
    def test_non_200(self, get) -> None:
        get.return_value = _response(503, "busy")
        with self.assertRaises(FetchError) as ctx:
            fetch_page("https://example.org/x", self.config)
        self.assertEqual(ctx.exception.status_code, 503)
        self.assertEqual(ctx.exception.url, "https://example.org/x")

    @mock.patch("fetcher.requests.get")
    def test_transport_error(self, get) -> None:
        get.side_effect = requests.ConnectionError("down")
        with self.assertRaises(FetchError):
            fetch_page("https://example.org/x", self.config)

    def test_hymn_url(self) -> None:
        self.assertEqual(hymn_url("012", self.config), "https://sdahymnals.com/Hymnal/012")

    @mock.patch("fetcher.requests.get")
    def test_hymn_not_found_page(self, get) -> None:
        get.return_value = _response(200, "<title>404 Not Found</title>")
        with self.assertRaises(FetchError):
            fetch_hymn_html("999", self.config)

    @mock.patch("fetcher.requests.get")
    def test_passage_query(self, get) -> None:
        get.return_value = _response(200, "<div class='passage-text'></div>")
        fetch_passage_html("John 3:16", self.config)
        self.assertEqual(get.call_args.kwargs["params"], {"search": "John 3:16", "version": "NIV"})


class TestFetchPassages(unittest.TestCase):
    def test_sequential_with_delay_and_failures_become_empty(self) -> None:
        config = PipelineConfig(fetch_delay_ms=250)
        calls = []

        def fetch(ref, cfg):
            calls.append(ref)
            if ref == "Romans 8:28":
                raise FetchError("HTTP 500", url="u", status_code=500)
            return f"<p>{ref}</p>"

        dbg = DebugRecorder(DebugSettings(enabled=False))
        with mock.patch("fetcher.time.sleep") as sleep:
            pages = fetch_passages(["John 3:16", "Romans 8:28", "Psalms 23"], config, fetch=fetch, dbg=dbg)

        self.assertEqual(calls, ["John 3:16", "Romans 8:28", "Psalms 23"])
        self.assertEqual([ref for ref, _ in pages], calls)
        self.assertEqual(pages[1], ("Romans 8:28", ""))
        self.assertEqual(sleep.call_count, 2)
        sleep.assert_called_with(0.25)
        self.assertEqual(len(dbg.warnings), 1)

    def test_no_delay(self) -> None:
        with mock.patch("fetcher.time.sleep") as sleep:
            fetch_passages(["a", "b"], PipelineConfig(fetch_delay_ms=0), fetch=lambda r, c: r)
        sleep.assert_not_called()


if __name__ == "__main__":
    unittest.main()
