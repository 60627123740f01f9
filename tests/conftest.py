"""Shared fixtures for the crawler tests."""

import threading
import time
from typing import Dict, List, Union

import pytest

from wordcrawler.crawler.fetcher import FetchResult


def page(body: str, *links: str) -> str:
    """Build a small HTML page with the given body text and anchors."""
    anchors = "".join(f'<a href="{link}">link</a>' for link in links)
    return f"<html><head><title>t</title></head><body><p>{body}</p>{anchors}</body></html>"


class FakeFetcher:
    """In-memory fetcher serving canned pages keyed by normalized URL."""

    def __init__(self, pages: Dict[str, Union[str, Exception, FetchResult]], delay: float = 0.0):
        self.pages = pages
        self.delay = delay
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def fetch(self, url: str) -> FetchResult:
        with self._lock:
            self.calls.append(url)
        if self.delay:
            time.sleep(self.delay)

        entry = self.pages.get(url)
        if entry is None:
            return FetchResult(url=url, status_code=0, error="Client error: not found")
        if isinstance(entry, Exception):
            raise entry
        if isinstance(entry, FetchResult):
            return entry
        return FetchResult(url=url, status_code=200, content=entry.encode('utf-8'), encoding='utf-8')


@pytest.fixture
def make_fetcher():
    return FakeFetcher
