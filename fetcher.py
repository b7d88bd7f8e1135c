"""
HTTP fetches for hymn pages and scripture passages.

Scripture passages all come from one third-party host, so they are fetched
one at a time with a fixed pause between requests.
"""
from __future__ import annotations

import time
from typing import Callable, List, Tuple

import requests

from config import PipelineConfig
from debug_tools import DebugRecorder
from errors import FetchError

HEADERS = {"User-Agent": "hymn-slides/1.0 (+weekly service deck builder)"}

NOT_FOUND_TEXT = "404 Not Found"


def fetch_page(url: str, config: PipelineConfig, params: dict | None = None) -> str:
    """GET `url` and return the body text; FetchError on transport failure or non-200."""
    try:
        resp = requests.get(url, params=params, headers=HEADERS, timeout=config.request_timeout_s)
    except requests.RequestException as exc:
        raise FetchError(f"Request failed for {url}: {exc}", url=url) from exc

    if resp.status_code != 200:
        raise FetchError(f"HTTP {resp.status_code} for {url}", url=url, status_code=resp.status_code)
    return resp.text


def hymn_url(hymn_number: str, config: PipelineConfig) -> str:
    return config.hymnal_base_url.rstrip("/") + "/" + hymn_number


def fetch_hymn_html(hymn_number: str, config: PipelineConfig) -> str:
    url = hymn_url(hymn_number, config)
    html = fetch_page(url, config)
    if not html or NOT_FOUND_TEXT in html:
        raise FetchError(f"Hymn {hymn_number} not found at {url}", url=url, status_code=404)
    return html


def fetch_passage_html(reference: str, config: PipelineConfig) -> str:
    return fetch_page(
        config.bible_search_url,
        config,
        params={"search": reference, "version": config.bible_version},
    )


def fetch_passages(
    references: List[str],
    config: PipelineConfig,
    fetch: Callable[[str, PipelineConfig], str] | None = None,
    dbg: DebugRecorder | None = None,
) -> List[Tuple[str, str]]:
    """
    Fetch each reference in order, pausing config.fetch_delay_ms between requests.
    A failed fetch contributes "" instead of aborting the batch.
    """
    fetch = fetch or fetch_passage_html
    pages: List[Tuple[str, str]] = []
    for i, ref in enumerate(references):
        if i > 0 and config.fetch_delay_ms:
            time.sleep(config.fetch_delay_s)
        try:
            html = fetch(ref, config)
        except FetchError as exc:
            if dbg is not None:
                dbg.warn(f"Scripture {ref!r} unavailable: {exc}")
            html = ""
        pages.append((ref, html))
    return pages
