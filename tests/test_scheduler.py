"""Tests for the worker pool and its termination protocol."""

import threading

import pytest

from conftest import FakeFetcher, page
from wordcrawler.crawler.fetcher import FetchError, FetchResult
from wordcrawler.crawler.scheduler import CrawlerScheduler, PendingWorkCounter
from wordcrawler.crawler.url_frontier import URLFrontier
from wordcrawler.storage.word_tally import RankedEntry


CRAWL_TIMEOUT = 10


def run_crawl(scheduler, seeds):
    """Run scrape() in a thread so a hang fails the test instead of blocking it."""
    errors = []

    def target():
        try:
            scheduler.scrape(seeds)
        except Exception as e:
            errors.append(e)

    thread = threading.Thread(target=target, daemon=True)
    thread.start()
    thread.join(CRAWL_TIMEOUT)
    assert not thread.is_alive(), "crawl did not terminate"
    if errors:
        raise errors[0]


class TestPendingWorkCounter:

    def test_claim_on_empty_idle_frontier_finishes(self):
        counter = PendingWorkCounter()
        assert counter.claim(URLFrontier()) is None
        assert counter.finished.is_set()

    def test_claim_counts_in_flight(self):
        frontier = URLFrontier()
        frontier.admit("https://a.com/")
        counter = PendingWorkCounter()

        assert counter.claim(frontier) == "https://a.com/"
        assert counter.in_flight == 1
        counter.release()
        assert counter.in_flight == 0

    def test_release_without_claim_raises(self):
        with pytest.raises(RuntimeError):
            PendingWorkCounter().release()

    def test_idle_claim_waits_for_admitted_work(self):
        frontier = URLFrontier()
        frontier.admit("https://a.com/1")
        counter = PendingWorkCounter()
        assert counter.claim(frontier) == "https://a.com/1"

        claimed = []
        waiter = threading.Thread(target=lambda: claimed.append(counter.claim(frontier)))
        waiter.start()
        waiter.join(0.2)
        # frontier is empty but one URL is still in flight
        assert waiter.is_alive()
        assert not counter.finished.is_set()

        frontier.admit("https://a.com/2")
        counter.wake()
        waiter.join(CRAWL_TIMEOUT)
        assert claimed == ["https://a.com/2"]

    def test_last_release_finishes_waiting_claim(self):
        frontier = URLFrontier()
        frontier.admit("https://a.com/1")
        counter = PendingWorkCounter()
        counter.claim(frontier)

        claimed = []
        waiter = threading.Thread(target=lambda: claimed.append(counter.claim(frontier)))
        waiter.start()
        counter.release()
        waiter.join(CRAWL_TIMEOUT)

        assert claimed == [None]
        assert counter.finished.is_set()

    def test_cancel_releases_waiters(self):
        frontier = URLFrontier()
        frontier.admit("https://a.com/1")
        counter = PendingWorkCounter()
        counter.claim(frontier)

        waiter = threading.Thread(target=counter.claim, args=(frontier,))
        waiter.start()
        counter.cancel()
        waiter.join(CRAWL_TIMEOUT)
        assert not waiter.is_alive()


class TestCrawlerScheduler:

    def test_small_site_scanned_exactly_once(self):
        fetcher = FakeFetcher({
            "https://a.com/": page("alpha", "/b", "/c"),
            "https://a.com/b": page("beta", "/", "/c"),
            "https://a.com/c": page("gamma"),
        }, delay=0.01)
        scheduler = CrawlerScheduler(fetcher, max_workers=3)

        run_crawl(scheduler, ["https://a.com"])

        assert sorted(fetcher.calls) == ["https://a.com/", "https://a.com/b", "https://a.com/c"]
        assert scheduler.word_tally.snapshot() == {'alpha': 1, 'beta': 1, 'gamma': 1, 'link': 4, 't': 3}
        assert not scheduler.is_running

    def test_long_chain_terminates(self):
        pages = {
            f"https://a.com/{i}": page(f"page{i}", f"/{i + 1}")
            for i in range(30)
        }
        pages["https://a.com/30"] = page("end")
        fetcher = FakeFetcher(pages, delay=0.001)
        scheduler = CrawlerScheduler(fetcher, max_workers=5)

        run_crawl(scheduler, ["https://a.com/0"])

        assert len(fetcher.calls) == 31
        assert len(set(fetcher.calls)) == 31

    def test_wide_fan_out_uses_all_pages_once(self):
        children = [f"/child/{i}" for i in range(60)]
        pages = {"https://a.com/": page("root", *children)}
        for i, child in enumerate(children):
            # every child links back to the root and to a sibling
            pages[f"https://a.com{child}"] = page("child", "/", children[(i + 1) % 60])
        fetcher = FakeFetcher(pages, delay=0.001)
        scheduler = CrawlerScheduler(fetcher, max_workers=8)

        run_crawl(scheduler, ["https://a.com/"])

        assert len(fetcher.calls) == 61
        assert len(set(fetcher.calls)) == 61
        assert scheduler.word_tally['child'] == 60

    def test_cross_host_links_never_fetched(self):
        fetcher = FakeFetcher({
            "https://a.com/": page("home", "https://b.com/x", "/local"),
            "https://a.com/local": page("local"),
            "https://b.com/x": page("foreign"),
        })
        scheduler = CrawlerScheduler(fetcher, max_workers=2)

        run_crawl(scheduler, ["https://a.com/"])

        assert "https://b.com/x" not in fetcher.calls
        assert scheduler.word_tally['foreign'] == 0

    def test_failed_seed_does_not_affect_others(self):
        fetcher = FakeFetcher({
            "https://down.com/": FetchError("https://down.com/", "connection refused"),
            "https://up.com/": page("survivor", "/more"),
            "https://up.com/more": page("extra"),
        })
        scheduler = CrawlerScheduler(fetcher, max_workers=2)

        run_crawl(scheduler, ["https://down.com/", "https://up.com/"])

        assert scheduler.word_tally['survivor'] == 1
        assert scheduler.word_tally['extra'] == 1
        stats = scheduler.get_stats()
        assert stats['errors'] == 1
        assert stats['pages_scanned'] == 2
        assert stats['urls_crawled'] == 3

    def test_fetch_result_error_counts_as_failure(self):
        fetcher = FakeFetcher({
            "https://a.com/": page("home", "/missing"),
            "https://a.com/missing": FetchResult(
                url="https://a.com/missing", status_code=0, error="Request timeout"
            ),
        })
        scheduler = CrawlerScheduler(fetcher, max_workers=2)

        run_crawl(scheduler, ["https://a.com/"])

        assert scheduler.get_stats()['errors'] == 1
        assert scheduler.word_tally['home'] == 1
        assert scheduler.monitor.get_summary()['errors'] == {'fetch': 1}

    def test_page_with_unknown_charset_is_still_counted(self):
        fetcher = FakeFetcher({
            "https://a.com/": FetchResult(
                url="https://a.com/", status_code=200,
                content=b"<p>hello world</p><a href='/next'>next</a>",
                encoding="x-bogus-charset"
            ),
            "https://a.com/next": page("more"),
        })
        scheduler = CrawlerScheduler(fetcher, max_workers=2)

        run_crawl(scheduler, ["https://a.com/"])

        assert scheduler.word_tally['hello'] == 1
        assert scheduler.word_tally['more'] == 1
        assert scheduler.get_stats()['errors'] == 0

    def test_unexpected_error_is_isolated(self):
        fetcher = FakeFetcher({
            "https://a.com/": page("home", "/boom", "/fine"),
            "https://a.com/boom": RuntimeError("unexpected"),
            "https://a.com/fine": page("fine"),
        })
        scheduler = CrawlerScheduler(fetcher, max_workers=1)

        run_crawl(scheduler, ["https://a.com/"])

        assert scheduler.word_tally['fine'] == 1
        assert scheduler.get_stats()['errors'] == 1

    def test_all_seeds_failing_still_terminates(self):
        fetcher = FakeFetcher({})
        scheduler = CrawlerScheduler(fetcher, max_workers=4)

        run_crawl(scheduler, ["https://a.com/", "https://b.com/"])

        assert scheduler.find_most_recurring_words(5) == []
        assert scheduler.get_stats()['errors'] == 2

    def test_no_seeds_terminates_immediately(self):
        scheduler = CrawlerScheduler(FakeFetcher({}), max_workers=3)
        run_crawl(scheduler, [])
        assert scheduler.get_stats()['urls_crawled'] == 0

    def test_find_most_recurring_words(self):
        fetcher = FakeFetcher({
            "https://a.com/": "<p>the cat the</p><a href='/2'>the</a>",
            "https://a.com/2": "<p>cat dog</p>",
        })
        scheduler = CrawlerScheduler(fetcher, max_workers=2)

        run_crawl(scheduler, ["https://a.com/"])

        assert scheduler.find_most_recurring_words(2) == [RankedEntry('the', 3), RankedEntry('cat', 2)]
        assert len(scheduler.find_most_recurring_words()) == 3

    def test_zero_workers_rejected(self):
        with pytest.raises(ValueError):
            CrawlerScheduler(FakeFetcher({}), max_workers=0)

    def test_invalid_seed_rejected(self):
        scheduler = CrawlerScheduler(FakeFetcher({}), max_workers=1)
        with pytest.raises(ValueError):
            scheduler.scrape(["not-a-url"])
        assert not scheduler.is_running

    def test_scheduler_runs_single_crawl(self):
        scheduler = CrawlerScheduler(FakeFetcher({}), max_workers=1)
        run_crawl(scheduler, [])
        with pytest.raises(RuntimeError):
            scheduler.scrape(["https://a.com/"])

    def test_stop_crawling_is_cooperative(self):
        fetch_started = threading.Event()
        release_fetch = threading.Event()

        class BlockingFetcher(FakeFetcher):
            def fetch(self, url):
                fetch_started.set()
                release_fetch.wait(CRAWL_TIMEOUT)
                return super().fetch(url)

        fetcher = BlockingFetcher({"https://a.com/": page("first", "/next"),
                                   "https://a.com/next": page("second")})
        scheduler = CrawlerScheduler(fetcher, max_workers=2)
        crawl = threading.Thread(target=scheduler.scrape, args=(["https://a.com/"],), daemon=True)
        crawl.start()

        assert fetch_started.wait(CRAWL_TIMEOUT)
        scheduler.stop_crawling(timeout=0)
        release_fetch.set()
        crawl.join(CRAWL_TIMEOUT)

        assert not crawl.is_alive()
        assert "https://a.com/next" not in fetcher.calls
        assert scheduler.word_tally['first'] == 1
