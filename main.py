#!/usr/bin/env python3
"""
Main entry point for the word frequency crawler.
"""

import argparse
import logging
import signal
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional, Sequence

import yaml

from wordcrawler import __version__
from wordcrawler.crawler.fetcher import WebFetcher
from wordcrawler.crawler.scheduler import CrawlerScheduler
from wordcrawler.storage.word_tally import RankedEntry
from wordcrawler.utils.config import Config, load_config, validate_crawler_config
from wordcrawler.utils.logger import log_system_info, setup_logging
from wordcrawler.utils.monitoring import initialize_monitoring


DEFAULT_CONFIG_PATH = 'config.yaml'


def format_ranking(entries: Sequence[RankedEntry]) -> str:
    """Render ranked words as numbered lines."""
    if not entries:
        return "No words were found."

    lines = ["The most recurring words are:"]
    for position, entry in enumerate(entries, start=1):
        lines.append(f"{position}. '{entry.word}' with a count of {entry.count}")
    return "\n".join(lines)


class CrawlerApp:
    """Main application class for the word frequency crawler."""

    def __init__(self):
        self.scheduler: Optional[CrawlerScheduler] = None
        self.logger = logging.getLogger(__name__)

    def load(self, config_path: Optional[str], workers: Optional[int] = None,
             top: Optional[int] = None, seeds: Optional[List[str]] = None) -> Config:
        """Load the configuration and apply command line overrides."""
        config = load_config(config_path)

        if workers is not None:
            config.crawler.max_workers = workers
        if top is not None:
            config.crawler.top_words = top
        if seeds:
            config.crawler.seed_urls = list(seeds)

        validate_crawler_config(config.crawler)
        return config

    def setup_signal_handlers(self):
        """Treat SIGTERM like Ctrl-C so both stop the crawl cooperatively."""
        signal.signal(signal.SIGTERM, signal.default_int_handler)

    def run(self, config: Config, enable_json: bool = False) -> List[RankedEntry]:
        """Run the crawl and return the ranked words."""
        setup_logging(asdict(config.logging), enable_json=enable_json)
        self.setup_signal_handlers()
        log_system_info()

        self.logger.info("=== WORD CRAWLER STARTING ===")
        self.logger.info(f"Seed URLs: {config.crawler.seed_urls}")
        self.logger.info(f"Workers: {config.crawler.max_workers}")

        monitor = initialize_monitoring(
            config.monitoring.metrics_enabled,
            config.monitoring.prometheus_port
        )
        monitor.metrics.start_prometheus_server()

        with WebFetcher(
            user_agent=config.crawler.user_agent,
            request_timeout=config.crawler.request_timeout,
            max_concurrent_requests=config.crawler.max_workers,
            max_content_size=config.crawler.max_content_size
        ) as fetcher:
            self.scheduler = CrawlerScheduler(
                fetcher,
                max_workers=config.crawler.max_workers,
                monitor=monitor
            )
            try:
                self.scheduler.scrape(config.crawler.seed_urls)
            except KeyboardInterrupt:
                self.logger.info("Shutdown requested, stopping crawler...")
                self.scheduler.stop_crawling(timeout=config.crawler.request_timeout)

        self.logger.info("=== WORD CRAWLER FINISHED ===")
        return self.scheduler.find_most_recurring_words(config.crawler.top_words)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Concurrent same-host crawler that ranks the most recurring words",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                                # Use config.yaml or built-in defaults
  python main.py --config my_config.yaml        # Run with custom config
  python main.py --workers 10 --top 20          # Override pool size and result length
  python main.py --seed https://example.com     # Crawl a single site
        """
    )

    parser.add_argument(
        '--config',
        help=f'Path to configuration file (default: {DEFAULT_CONFIG_PATH} if present)'
    )

    parser.add_argument(
        '--workers',
        type=int,
        help='Number of concurrent workers'
    )

    parser.add_argument(
        '--top',
        type=int,
        help='Number of most recurring words to print'
    )

    parser.add_argument(
        '--seed',
        action='append',
        dest='seeds',
        metavar='URL',
        help='Seed URL to crawl (repeatable, replaces the configured seeds)'
    )

    parser.add_argument(
        '--json-logs',
        action='store_true',
        help='Emit logs as JSON lines'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'Word Crawler {__version__}'
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    config_path = args.config
    if config_path is None and Path(DEFAULT_CONFIG_PATH).exists():
        config_path = DEFAULT_CONFIG_PATH

    app = CrawlerApp()
    try:
        config = app.load(config_path, workers=args.workers, top=args.top, seeds=args.seeds)
    except (FileNotFoundError, ValueError, TypeError, yaml.YAMLError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    ranking = app.run(config, enable_json=args.json_logs)
    print(format_ranking(ranking))
    return 0


if __name__ == '__main__':
    sys.exit(main())
