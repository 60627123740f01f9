"""
Crawler scheduler that runs the worker pool and detects when the crawl is over.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .url_frontier import URLFrontier
from .fetcher import FetchError
from .scanner import PageScanner
from ..storage.word_tally import RankedEntry, WordTally
from ..utils.logger import CrawlerLogAdapter, get_crawler_logger
from ..utils.monitoring import CrawlerMonitor, initialize_monitoring
from ..utils.urls import is_valid_url


@dataclass
class CrawlStats:
    """Statistics for crawl operations."""
    start_time: float
    end_time: Optional[float] = None
    urls_crawled: int = 0
    pages_scanned: int = 0
    errors: int = 0
    partial_pages: int = 0
    links_admitted: int = 0
    words_counted: int = 0
    total_bytes_downloaded: int = 0

    @property
    def elapsed_time(self) -> float:
        return (self.end_time or time.time()) - self.start_time

    @property
    def pages_per_minute(self) -> float:
        elapsed_minutes = self.elapsed_time / 60
        return self.urls_crawled / elapsed_minutes if elapsed_minutes > 0 else 0


class PendingWorkCounter:
    """
    Number of URLs taken from the frontier whose processing has not finished.

    Idle workers park on the counter's condition. The crawl is finished when
    the frontier is empty while nothing is in flight; both are checked under
    the same condition, and a worker only admits links while it is counted as
    in flight, so no URL can appear after that check.
    """

    def __init__(self):
        self._condition = threading.Condition()
        self._in_flight = 0
        self.finished = threading.Event()

    @property
    def in_flight(self) -> int:
        with self._condition:
            return self._in_flight

    def claim(self, frontier: URLFrontier) -> Optional[str]:
        """
        Take the next URL and count it as in flight.

        Blocks while the frontier is empty and other work is still running.
        Returns None once the crawl is finished or cancelled.
        """
        with self._condition:
            while not self.finished.is_set():
                url = frontier.take()
                if url is not None:
                    self._in_flight += 1
                    return url

                if self._in_flight == 0:
                    self.finished.set()
                    self._condition.notify_all()
                    break

                self._condition.wait()
        return None

    def release(self):
        """Mark one claimed URL as fully processed."""
        with self._condition:
            if self._in_flight == 0:
                raise RuntimeError("release() called without a matching claim()")
            self._in_flight -= 1
            self._condition.notify_all()

    def wake(self):
        """Wake idle workers after new URLs were admitted."""
        with self._condition:
            self._condition.notify_all()

    def cancel(self):
        """Tell every worker to stop after its current page."""
        with self._condition:
            self.finished.set()
            self._condition.notify_all()


class CrawlerScheduler:
    """
    Runs a fixed pool of worker threads over a shared frontier.

    Each worker takes a URL, fetches and scans it, admits the same-host links
    it found and merges the page's word counts into the global tally.
    """

    def __init__(self, fetcher, max_workers: int = 5,
                 scanner: Optional[PageScanner] = None,
                 monitor: Optional[CrawlerMonitor] = None,
                 report_interval: float = 30.0):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self.logger = logging.getLogger(__name__)
        self.fetcher = fetcher
        self.max_workers = max_workers
        self.scanner = scanner or PageScanner()
        self.monitor = monitor or initialize_monitoring()
        self.report_interval = report_interval

        # Shared crawl state
        self.frontier = URLFrontier()
        self.word_tally = WordTally()
        self.pending = PendingWorkCounter()

        self.stats = CrawlStats(start_time=time.time())
        self._stats_lock = threading.Lock()
        self._active_workers = 0
        self.is_running = False
        self.workers: List[threading.Thread] = []

    def scrape(self, seed_urls: Iterable[str]):
        """
        Crawl from the seed URLs, blocking until no work is left.

        Raises ValueError if a seed URL is not a crawlable http(s) URL.
        """
        seed_urls = list(seed_urls)
        for url in seed_urls:
            if not is_valid_url(url):
                raise ValueError(f"Seed URL is not a crawlable http(s) URL: {url!r}")

        if self.is_running:
            self.logger.warning("Crawler is already running")
            return
        if self.pending.finished.is_set():
            raise RuntimeError("A scheduler runs a single crawl; create a new one")

        self.is_running = True
        self.stats = CrawlStats(start_time=time.time())

        try:
            added_count = self.frontier.admit_many(seed_urls)
            self.logger.info(f"Added {added_count} seed URLs to frontier")

            self.workers = [
                threading.Thread(
                    target=self._worker,
                    args=(f"worker-{i}",),
                    name=f"worker-{i}",
                    daemon=True
                )
                for i in range(self.max_workers)
            ]
            for worker in self.workers:
                worker.start()

            reporter = threading.Thread(target=self._stats_reporter, name="stats-reporter", daemon=True)
            reporter.start()

            self.logger.info(f"Started crawling with {self.max_workers} workers")

            self.pending.finished.wait()
            for worker in self.workers:
                worker.join()
            reporter.join()

            self.stats.end_time = time.time()
            self._log_final_stats()

        finally:
            self.is_running = False

    def _worker(self, worker_id: str):
        """
        Worker loop that processes URLs from the frontier until the crawl ends.
        """
        log = get_crawler_logger(__name__, worker=worker_id)
        log.debug(f"Worker {worker_id} started")

        while True:
            url = self.pending.claim(self.frontier)
            if url is None:
                break

            self._update_active_workers(1)
            try:
                self._process_url(url, log)

            except FetchError as e:
                log.log_url_event(logging.WARNING, url, f"Failed to fetch {url}: {e.reason}")
                self._record_failure('fetch')

            except Exception as e:
                log.error(f"Error processing {url}: {e}", exc_info=True)
                self._record_failure(type(e).__name__)

            finally:
                self._update_active_workers(-1)
                self.pending.release()

        log.debug(f"Worker {worker_id} finished")

    def _process_url(self, url: str, log: CrawlerLogAdapter):
        """Fetch and scan one page, then feed its links and words back."""
        fetch_result = self.fetcher.fetch(url)
        if fetch_result.error or fetch_result.content is None:
            raise FetchError(url, fetch_result.error or "empty response")

        scan_result = self.scanner.scan(url, fetch_result.content, fetch_result.encoding)
        if scan_result.error:
            log.debug(f"Using partial scan of {url}: {scan_result.error}")

        added_count = self.frontier.admit_many(scan_result.links)
        if added_count:
            self.pending.wake()

        self.word_tally.merge(scan_result.words)

        word_count = scan_result.word_count
        content_size = len(fetch_result.content)
        with self._stats_lock:
            self.stats.urls_crawled += 1
            self.stats.pages_scanned += 1
            self.stats.partial_pages += 1 if scan_result.error else 0
            self.stats.links_admitted += added_count
            self.stats.words_counted += word_count
            self.stats.total_bytes_downloaded += content_size

        self.monitor.record_url_crawled(url, fetch_result.fetch_time, content_size)
        self.monitor.record_links_admitted(added_count)
        self.monitor.record_words_counted(word_count)
        self.monitor.update_queue_size(len(self.frontier))

        log.debug(f"Processed {url}: {word_count} words, {added_count} new links")

    def _record_failure(self, error_type: str):
        with self._stats_lock:
            self.stats.urls_crawled += 1
            self.stats.errors += 1
        self.monitor.record_error(error_type)

    def _update_active_workers(self, delta: int):
        with self._stats_lock:
            self._active_workers += delta
            active = self._active_workers
        self.monitor.update_active_workers(active)

    def _stats_reporter(self):
        """Periodically log crawl statistics until the crawl ends."""
        while not self.pending.finished.wait(self.report_interval):
            self._log_current_stats()

    def _log_current_stats(self):
        frontier_stats = self.frontier.get_stats()
        self.logger.info(
            f"Crawl Progress: "
            f"Crawled={self.stats.urls_crawled}, "
            f"Queued={frontier_stats['total_queued']}, "
            f"InFlight={self.pending.in_flight}, "
            f"Errors={self.stats.errors}, "
            f"Words={self.stats.words_counted}, "
            f"Rate={self.stats.pages_per_minute:.1f} pages/min"
        )

    def _log_final_stats(self):
        frontier_stats = self.frontier.get_stats()

        self.logger.info("=== CRAWL COMPLETED ===")
        self.logger.info(f"Total URLs crawled: {self.stats.urls_crawled}")
        self.logger.info(f"Pages scanned: {self.stats.pages_scanned}")
        self.logger.info(f"Partially scanned pages: {self.stats.partial_pages}")
        self.logger.info(f"Errors: {self.stats.errors}")
        self.logger.info(f"Words counted: {self.stats.words_counted}")
        self.logger.info(f"Distinct words: {len(self.word_tally)}")
        self.logger.info(f"Total time: {self.stats.elapsed_time:.2f} seconds")
        self.logger.info(f"Average rate: {self.stats.pages_per_minute:.1f} pages/min")
        self.logger.info(f"Data downloaded: {self.stats.total_bytes_downloaded / 1024 / 1024:.1f} MB")
        self.logger.info(f"URLs remaining in queue: {frontier_stats['total_queued']}")
        self.logger.info(f"URLs seen: {frontier_stats['total_seen']}")

    def stop_crawling(self, timeout: Optional[float] = None):
        """
        Stop the crawl cooperatively.

        Workers finish the page they are on and exit; the word tally keeps
        everything merged so far.
        """
        self.logger.info("Stopping crawler...")
        self.pending.cancel()
        for worker in self.workers:
            worker.join(timeout)

    def find_most_recurring_words(self, n: Optional[int] = None) -> List[RankedEntry]:
        """
        Rank the crawled words by frequency.

        Only valid once the crawl has finished or been stopped.
        """
        if self.is_running:
            raise RuntimeError("Words can only be ranked after the crawl has finished")
        return self.word_tally.top_n(n)

    def get_stats(self) -> Dict:
        """Get current crawl statistics."""
        with self._stats_lock:
            return {
                'urls_crawled': self.stats.urls_crawled,
                'pages_scanned': self.stats.pages_scanned,
                'partial_pages': self.stats.partial_pages,
                'errors': self.stats.errors,
                'links_admitted': self.stats.links_admitted,
                'words_counted': self.stats.words_counted,
                'distinct_words': len(self.word_tally),
                'elapsed_time': self.stats.elapsed_time,
                'pages_per_minute': self.stats.pages_per_minute,
                'total_bytes_downloaded': self.stats.total_bytes_downloaded,
                'urls_in_queue': len(self.frontier),
                'is_running': self.is_running
            }
