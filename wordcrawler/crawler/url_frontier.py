"""
URL Frontier implementation for managing URLs to crawl.
Guarantees that every URL is scheduled at most once over the life of a crawl.
"""

import logging
import threading
from collections import deque
from typing import Deque, Dict, Generic, Iterable, Optional, Set, TypeVar

from ..utils.urls import normalize_url


T = TypeVar('T')


class FIFOQueue(Generic[T]):
    """Plain first-in first-out queue. Not thread-safe on its own."""

    def __init__(self):
        self._elements: Deque[T] = deque()

    def enqueue(self, item: T):
        """Add an element to the end of the queue."""
        self._elements.append(item)

    def dequeue(self) -> Optional[T]:
        """Remove and return the front element, or None if the queue is empty."""
        if not self._elements:
            return None
        return self._elements.popleft()

    def __len__(self) -> int:
        return len(self._elements)


class URLFrontier:
    """
    Thread-safe deduplicating work queue.

    Keeps a FIFO of URLs waiting to be dispatched plus the set of every URL
    ever admitted. A URL stays in the seen set after it is taken, so it can
    never be queued a second time.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._queue: FIFOQueue[str] = FIFOQueue()
        self._seen_urls: Set[str] = set()
        self.urls_taken = 0

    def admit(self, url: str) -> bool:
        """
        Add a URL to the frontier unless it has been admitted before.

        The caller is responsible for only passing crawlable URLs.
        Returns True if the URL was queued, False if it was already seen.
        """
        normalized = normalize_url(url)
        with self._lock:
            if normalized in self._seen_urls:
                return False
            self._seen_urls.add(normalized)
            self._queue.enqueue(normalized)

        self.logger.debug(f"Admitted URL to frontier: {normalized}")
        return True

    def admit_many(self, urls: Iterable[str]) -> int:
        """Admit multiple URLs. Returns count of newly queued URLs."""
        added_count = 0
        for url in urls:
            if self.admit(url):
                added_count += 1
        return added_count

    def take(self) -> Optional[str]:
        """Remove and return the next pending URL, or None without blocking."""
        with self._lock:
            url = self._queue.dequeue()
            if url is not None:
                self.urls_taken += 1
        return url

    def is_empty(self) -> bool:
        """Check if there are no pending URLs."""
        with self._lock:
            return len(self._queue) == 0

    def has_seen(self, url: str) -> bool:
        """Check whether a URL was ever admitted."""
        normalized = normalize_url(url)
        with self._lock:
            return normalized in self._seen_urls

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)

    def get_stats(self) -> Dict[str, int]:
        """Get frontier statistics."""
        with self._lock:
            return {
                'total_queued': len(self._queue),
                'total_seen': len(self._seen_urls),
                'total_taken': self.urls_taken
            }
